"""
officehub.api.__main__ — Entry point for ``python -m officehub.api``
=====================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (port).
3. Serve :data:`officehub.api.main.app` with uvicorn.
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("officehub")


def main() -> None:
    """Bootstrap and serve the OfficeHub API."""
    load_dotenv()

    from officehub.api.deps import get_config

    cfg = get_config()
    logger.info("Config loaded — Community: %s", cfg.community_name)
    uvicorn.run(
        "officehub.api.main:app",
        host="0.0.0.0",
        port=cfg.dashboard_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
