"""
officehub.constants — Shared Constants
=======================================

Single source of truth for the Discord permission bits and the placeholder
identity used when a stored reference points at a user we have no record of.
"""

from __future__ import annotations

import discord

# ---------------------------------------------------------------------------
# Voice channel permission masks
# ---------------------------------------------------------------------------
VOICE_ACCESS: int = discord.Permissions(connect=True, speak=True).value  # 3145728
NO_PERMISSIONS: int = discord.Permissions.none().value

# Discord channel / overwrite type codes
CHANNEL_TYPE_VOICE = 2
OVERWRITE_TYPE_ROLE = 0
OVERWRITE_TYPE_MEMBER = 1

# ---------------------------------------------------------------------------
# Placeholder identity for dangling user references
# ---------------------------------------------------------------------------
UNKNOWN_USERNAME = "Unknown"
UNKNOWN_DISCRIMINATOR = "0000"
