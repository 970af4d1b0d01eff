"""Message builders and command parsing for the Slack bot.

WHY: The bot sends a handful of message shapes: X2I replies (possibly
truncated), the help text, the alphabet legend and reload results.
Keeping them here leaves bot.py focused on event handling and makes the
output testable without a Slack client.

HOW: Pure functions returning strings or lists of Block Kit block dicts.
build_x2i_response() applies the output budget the engine itself does
not know about.

RULES:
- Every function is pure (no Slack calls, no engine state)
- Truncated replies end with "…" and are followed by the timeout message
- Python 3.9+ compatible (no match/case, no PEP 604 unions at runtime)
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

ELLIPSIS = "…"


def unescape_slack(text: str) -> str:
    """Undo Slack's escaping of ``&``, ``<`` and ``>`` in message text.

    X-SAMPA uses ``<`` and ``>`` (e.g. ``<F>``), so the engine must see
    the characters the user typed.
    """
    return text.replace("&lt;", "<").replace("&gt;", ">").replace("&amp;", "&")


def escape_slack(text: str) -> str:
    """Escape ``&``, ``<`` and ``>`` for posting as message text."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def build_x2i_response(
    lines: List[str],
    timeout_chars: int,
    timeout_message: str,
) -> List[str]:
    """Turn engine output into the messages to post.

    WHY: Slack rejects very long messages and a wall of IPA drowns the
    channel. The caller owns the budget, so it is applied here.

    RULES:
    - No lines → no messages
    - Joined text within budget → one message
    - Over budget → first (timeout_chars - 1) characters plus "…",
      then the timeout message as a second message

    Args:
        lines: Output of X2IEngine.search().
        timeout_chars: Maximum length of the reply text.
        timeout_message: Sent after a truncated reply.

    Returns:
        Zero, one or two message texts.
    """
    results = "\n".join(lines)
    if not results:
        return []
    if len(results) > timeout_chars:
        return [results[:max(timeout_chars - 1, 0)] + ELLIPSIS, timeout_message]
    return [results]


def parse_command(text: str, prefix: str) -> Optional[Tuple[str, List[str]]]:
    """Split ``!name arg arg`` into ``("name", ["arg", "arg"])``.

    Returns None when the text does not start with ``prefix``.
    """
    m = re.match(r"^{}(\S*) ?(.*)".format(re.escape(prefix)), text, re.DOTALL)
    if m is None:
        return None
    name, args = m.groups()
    return name, args.split()


def build_help_text(template: str, prefix: str, delete_emoji: str) -> str:
    """Fill the help template with the configured prefix and emoji."""
    return template.format(prefix=prefix, emoji=delete_emoji)


def build_alphabet_blocks(alphabet_list: str) -> List[Dict[str, Any]]:
    """Block Kit message listing every loaded notation."""
    return [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": "Available notations"},
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": alphabet_list or "_No notations loaded._"},
        },
    ]


def build_reload_text(rule_set_count: int, error: Optional[str] = None) -> str:
    """Result line for the reload command."""
    if error is not None:
        return ":warning: Reload failed, keeping the current rules.\n```{}```".format(error)
    return ":white_check_mark: Reloaded {} notation{}.".format(
        rule_set_count, "" if rule_set_count == 1 else "s"
    )
