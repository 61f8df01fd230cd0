"""
officehub.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for **infrastructure-only** settings (Discord guild,
admin role, where office voice channels are created).  Secrets (bot token,
OAuth client secret, JWT secret, database URL) live in the environment and
are loaded from ``.env``.

Usage::

    from officehub.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.guild_id)          # "1468816181854081229"
    print(cfg.admin_role_id)     # "1468816181854081300"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_CHANNEL_PREFIX = "Office-"


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class OfficeHubConfig:
    """Immutable configuration loaded from ``config.yaml``.

    Discord snowflakes are kept as strings, the way the Discord REST API
    serialises them.
    """

    # Identity
    community_name: str

    # Discord
    guild_id: str  # Guild that owns the office voice channels

    # Dashboard
    dashboard_port: int

    # Admin
    admin_role_id: str  # Members holding this role may manage every office

    # Optional
    voice_category_id: str | None = None  # Parent category for office channels
    office_channel_prefix: str = DEFAULT_CHANNEL_PREFIX


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> OfficeHubConfig:
    """Read *path* and return an :class:`OfficeHubConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return OfficeHubConfig(
        community_name=raw["community_name"],
        guild_id=str(raw["guild_id"]),
        dashboard_port=int(raw["dashboard_port"]),
        admin_role_id=str(raw["admin_role_id"]),
        voice_category_id=(
            str(raw["voice_category_id"]) if raw.get("voice_category_id") else None
        ),
        office_channel_prefix=raw.get("office_channel_prefix") or DEFAULT_CHANNEL_PREFIX,
    )
