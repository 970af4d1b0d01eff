"""Configuration constants and .env loading.

WHY: Centralizes every configurable value (data folder, command prefix,
output budget, emoji, Slack credentials) so operators can change them
without touching code, and tests can see the defaults in one place.

HOW: python-dotenv loads the .env file on import. Constants are module
level and read from environment variables with sensible defaults. The
load_slack_tokens() function gives a clear error when a token is missing.

RULES:
- The bundled rule files live in conniebot/data/x2i
- TIMEOUT_CHARS is the caller-side output budget; the engine knows nothing of it
- Tokens are loaded from the environment, never hardcoded
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the bot is started from)
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


# ---------------------------------------------------------------------------
# X2I rule data
# ---------------------------------------------------------------------------

BUNDLED_X2I_DIR = Path(__file__).resolve().parent / "data" / "x2i"
"""Rule files shipped with the package."""

X2I_DATA_DIR = Path(os.getenv("X2I_DATA_DIR", str(BUNDLED_X2I_DIR)))
X2I_SKIP_INVALID = _env_bool("X2I_SKIP_INVALID", False)

# ---------------------------------------------------------------------------
# Chat behaviour
# ---------------------------------------------------------------------------

COMMAND_PREFIX = os.getenv("COMMAND_PREFIX", "!")
TIMEOUT_CHARS = int(os.getenv("TIMEOUT_CHARS", "2000"))
TIMEOUT_MESSAGE = os.getenv(
    "TIMEOUT_MESSAGE",
    "That reply was too long, so it was cut short. Try splitting your message.",
)
DELETE_EMOJI = os.getenv("DELETE_EMOJI", "x")
PING_EMOJI = os.getenv("PING_EMOJI", "")
"""Reaction added when the bot is mentioned by name; empty disables it."""
OWNER_ID = os.getenv("OWNER_ID", "")

EDIT_WINDOW_S = 60 * 60 * 24
"""Edits to messages older than one day are not propagated to replies."""

HELP_TEXT = (
    "Write `x/.../` or `x[...]` for X-SAMPA, `k/.../` for Kirshenbaum and "
    "`p/.../` for Praat. Send `{prefix}alphabets` to list every notation. "
    "React with :{emoji}: on one of my replies to delete it."
)

# ---------------------------------------------------------------------------
# Slack
# ---------------------------------------------------------------------------

SLACK_CHANNEL_ID = os.getenv("SLACK_CHANNEL_ID", "")


def load_slack_tokens() -> tuple[str, str]:
    """Load the Slack bot and app tokens from the environment.

    WHY: Socket Mode needs both tokens. Failing at startup with a clear
    message beats a cryptic authentication error later.

    RULES:
    - Raises ValueError naming the missing variable
    - Never returns a default/placeholder value
    """
    bot_token = os.getenv("SLACK_BOT_TOKEN", "").strip()
    app_token = os.getenv("SLACK_APP_TOKEN", "").strip()
    if not bot_token:
        raise ValueError(
            "Slack bot token not configured. "
            "Add SLACK_BOT_TOKEN to the .env file in the app folder."
        )
    if not app_token:
        raise ValueError(
            "Slack app token not configured. "
            "Add SLACK_APP_TOKEN to the .env file in the app folder."
        )
    return bot_token, app_token
