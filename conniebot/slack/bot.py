"""Slack bot: Socket Mode event handlers for X2I replies and commands.

WHY: Users write phonetic shorthand in chat and expect the IPA to
appear as a threaded reply. This module is the glue between Slack
events and the X2I engine: it answers messages, keeps replies in sync
with edits, lets authors delete replies with a reaction, and serves a
few prefix commands.

HOW: Uses slack-bolt with Socket Mode (no public URL needed). ConnieBot
holds everything the handlers need (the EngineHolder, the reply tracker
and the chat settings) and create_app() registers thin wrappers around
its methods. Every handler reads ``holder.engine`` once per event, so a
concurrent reload never affects a reply halfway through.

RULES:
- Messages from bots and non-plain subtypes are ignored
- X2I output takes precedence; only messages without it are tried as commands
- Replies go in the message's thread and get the delete reaction
- Edits older than EDIT_WINDOW_S are not propagated
- Only the source message's author can delete a reply
- Direct mentions of the bot get PING_EMOJI (@here and @channel do not)
- Slack API failures are logged, never raised out of a handler
- Runnable as: python -m conniebot --slack
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler

from conniebot import config
from conniebot.slack.messages import (
    build_alphabet_blocks,
    build_help_text,
    build_reload_text,
    build_x2i_response,
    escape_slack,
    parse_command,
    unescape_slack,
)
from conniebot.slack.replies import ReplyTracker
from conniebot.x2i import CompileError, EngineHolder

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Dict[str, Any], Any, List[str]], Any]


class ConnieBot:
    """State and behaviour behind the Slack event handlers.

    Args:
        holder: Source of the current X2I engine.
        command_prefix: Prefix marking a command message.
        timeout_chars: Output budget for one X2I reply.
        timeout_message: Sent after a truncated reply.
        delete_emoji: Reaction name (without colons) that deletes a reply.
        ping_emoji: Reaction added to messages mentioning the bot (empty: off).
        owner_id: Slack user id allowed to run owner-only commands.
        channel_id: If set, only this channel is watched.
    """

    def __init__(
        self,
        holder: EngineHolder,
        command_prefix: str = config.COMMAND_PREFIX,
        timeout_chars: int = config.TIMEOUT_CHARS,
        timeout_message: str = config.TIMEOUT_MESSAGE,
        delete_emoji: str = config.DELETE_EMOJI,
        owner_id: str = config.OWNER_ID,
        channel_id: str = config.SLACK_CHANNEL_ID,
        ping_emoji: str = config.PING_EMOJI,
    ) -> None:
        self.holder = holder
        self.command_prefix = command_prefix
        self.timeout_chars = timeout_chars
        self.timeout_message = timeout_message
        self.delete_emoji = delete_emoji
        self.owner_id = owner_id
        self.channel_id = channel_id
        self.ping_emoji = ping_emoji
        self.replies = ReplyTracker(max_age_s=config.EDIT_WINDOW_S)
        self.commands: Dict[str, CommandHandler] = {}
        self.register_commands({
            "help": self._cmd_help,
            "alphabets": self._cmd_alphabets,
            "reload": self._cmd_reload,
        })

    # -----------------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------------

    def register(self, name: str, callback: CommandHandler) -> None:
        """Register a command. ``name`` is what follows the prefix (``\\S+``)."""
        self.commands[name] = callback

    def register_commands(self, callbacks: Dict[str, CommandHandler]) -> None:
        for name, callback in callbacks.items():
            self.register(name, callback)

    def _cmd_help(self, event: Dict[str, Any], client: Any, args: List[str]) -> None:
        self._post(client, event, build_help_text(
            config.HELP_TEXT, self.command_prefix, self.delete_emoji
        ))

    def _cmd_alphabets(self, event: Dict[str, Any], client: Any, args: List[str]) -> None:
        alphabet_list = self.holder.engine.alphabet_list
        client.chat_postMessage(
            channel=event["channel"],
            thread_ts=_thread_of(event),
            blocks=build_alphabet_blocks(alphabet_list),
            text=alphabet_list,
        )

    def _cmd_reload(self, event: Dict[str, Any], client: Any, args: List[str]) -> str:
        if not self.owner_id or event.get("user") != self.owner_id:
            return "denied"
        try:
            engine = self.holder.reload()
        except CompileError as exc:
            logger.error("X2I reload failed: %s", exc)
            self._post(client, event, build_reload_text(0, error=str(exc)))
            return "failed"
        self._post(client, event, build_reload_text(len(engine.rule_sets)))
        return "ok"

    def run_command(self, event: Dict[str, Any], client: Any) -> bool:
        """Dispatch a prefix command. Returns True if one was recognised."""
        parsed = parse_command(unescape_slack(event.get("text", "")), self.command_prefix)
        if parsed is None:
            return False
        name, args = parsed
        callback = self.commands.get(name)
        if callback is None:
            return False
        try:
            result = callback(event, client, args)
            logger.info("success:command/%s %s", name, "" if result is None else result)
        except Exception:
            logger.exception("error:command/%s", name)
        return True

    # -----------------------------------------------------------------------
    # X2I replies
    # -----------------------------------------------------------------------

    def create_x2i_response(self, text: str) -> List[str]:
        """Messages (already Slack-escaped) answering ``text``."""
        lines = self.holder.engine.search(unescape_slack(text))
        responses = build_x2i_response(lines, self.timeout_chars, self.timeout_message)
        return [escape_slack(r) for r in responses]

    def send_x2i_response(self, event: Dict[str, Any], client: Any) -> bool:
        """Reply to X2I spans in ``event``. Returns False when there were none."""
        responses = self.create_x2i_response(event.get("text", ""))
        if not responses:
            return False
        log_code = "all" if len(responses) == 1 else "partial"
        try:
            for response in responses:
                self._send_reply(client, event["channel"], event["ts"],
                                 event.get("user", ""), _thread_of(event), response)
            logger.info("success:x2i/%s %s", log_code, _summary(event))
        except Exception:
            logger.exception("error:x2i/%s %s", log_code, _summary(event))
        return True

    def _send_reply(
        self,
        client: Any,
        channel: str,
        source_ts: str,
        author: str,
        thread_ts: str,
        text: str,
    ) -> str:
        resp = client.chat_postMessage(channel=channel, thread_ts=thread_ts, text=text)
        reply_ts = resp["ts"]
        self.replies.add(channel, source_ts, author, reply_ts, text)
        try:
            client.reactions_add(channel=channel, timestamp=reply_ts, name=self.delete_emoji)
        except Exception:
            logger.exception("Failed to add delete reaction to %s", reply_ts)
        return reply_ts

    # -----------------------------------------------------------------------
    # Event handlers
    # -----------------------------------------------------------------------

    def handle_message(self, event: Dict[str, Any], client: Any) -> None:
        """Handle ``message`` events: new messages and edits."""
        if self.channel_id and event.get("channel") != self.channel_id:
            return

        subtype = event.get("subtype")
        if subtype == "message_changed":
            self.handle_edit(event, client)
            return
        if subtype or event.get("bot_id"):
            return

        if self.send_x2i_response(event, client):
            return
        self.run_command(event, client)

    def handle_edit(self, event: Dict[str, Any], client: Any) -> None:
        """Bring the replies to an edited message in line with its new text.

        WHY: Users fix typos in their shorthand; the IPA reply should
        follow instead of going stale.

        HOW: Recomputes the responses, edits replies whose text changed,
        deletes replies that are no longer needed and posts extra ones.
        """
        message = event.get("message", {})
        channel = event.get("channel", "")
        source_ts = message.get("ts", "")
        if message.get("bot_id"):
            return
        try:
            age = time.time() - float(source_ts)
        except ValueError:
            return
        if age > config.EDIT_WINDOW_S:
            return
        record = self.replies.get(channel, source_ts)
        if record is None:
            return

        responses = self.create_x2i_response(message.get("text", ""))
        try:
            for i, reply_ts in enumerate(record.replies):
                if i >= len(responses):
                    client.chat_delete(channel=channel, ts=reply_ts)
                    self.replies.remove_reply(channel, reply_ts)
                elif responses[i] != record.texts[i]:
                    client.chat_update(channel=channel, ts=reply_ts, text=responses[i])
                    self.replies.set_text(channel, reply_ts, responses[i])

            thread_ts = message.get("thread_ts") or source_ts
            for response in responses[len(record.replies):]:
                self._send_reply(client, channel, source_ts, record.author, thread_ts, response)
        except Exception:
            logger.exception("Failed to update replies to %s", source_ts)

    def handle_reaction_added(self, event: Dict[str, Any], client: Any) -> None:
        """Delete a reply when its source author reacts with the delete emoji."""
        if event.get("reaction") != self.delete_emoji:
            return
        item = event.get("item", {})
        channel = item.get("channel", "")
        reply_ts = item.get("ts", "")
        author = self.replies.author_of_reply(channel, reply_ts)
        if author is None or event.get("user") != author:
            return
        try:
            client.chat_delete(channel=channel, ts=reply_ts)
        except Exception:
            logger.exception("Failed to delete reply %s", reply_ts)
            return
        self.replies.remove_reply(channel, reply_ts)

    def handle_app_mention(self, event: Dict[str, Any], client: Any) -> None:
        """React with the ping emoji when the bot is mentioned by name.

        Slack only sends ``app_mention`` for explicit mentions of the bot
        user, so ``@here`` and ``@channel`` never reach this handler.
        """
        if not self.ping_emoji or event.get("bot_id"):
            return
        if self.channel_id and event.get("channel") != self.channel_id:
            return
        try:
            client.reactions_add(
                channel=event["channel"], timestamp=event["ts"], name=self.ping_emoji
            )
        except Exception:
            logger.exception("Failed to add ping reaction to %s", event.get("ts"))

    def _post(self, client: Any, event: Dict[str, Any], text: str) -> None:
        client.chat_postMessage(channel=event["channel"], thread_ts=_thread_of(event), text=text)


def _thread_of(event: Dict[str, Any]) -> str:
    return event.get("thread_ts") or event.get("ts", "")


def _summary(event: Dict[str, Any]) -> str:
    """Short log description of a message event."""
    text = event.get("text", "")
    if len(text) > 40:
        text = text[:39] + "…"
    return "{}@{}: {!r}".format(event.get("user", "?"), event.get("channel", "?"), text)


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------


def create_app(bot: ConnieBot, bot_token: Optional[str] = None) -> App:
    """Create the Slack Bolt app and route events to ``bot``.

    RULES:
    - If bot_token is None, reads SLACK_BOT_TOKEN via load_slack_tokens()
    - All handlers are registered before returning
    """
    token = bot_token or config.load_slack_tokens()[0]
    app = App(token=token)

    @app.event("message")
    def on_message(event: Dict[str, Any], client: Any) -> None:
        bot.handle_message(event, client)

    @app.event("reaction_added")
    def on_reaction_added(event: Dict[str, Any], client: Any) -> None:
        bot.handle_reaction_added(event, client)

    @app.event("app_mention")
    def on_app_mention(event: Dict[str, Any], client: Any) -> None:
        bot.handle_app_mention(event, client)

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Load the rules and start the bot in Socket Mode.

    RULES:
    - A CompileError aborts startup unless X2I_SKIP_INVALID is set
    - Requires SLACK_BOT_TOKEN and SLACK_APP_TOKEN
    - Blocks on SocketModeHandler.start()
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    bot_token, app_token = config.load_slack_tokens()

    logger.info("Starting to load bot...")
    try:
        holder = EngineHolder(config.X2I_DATA_DIR, config.X2I_SKIP_INVALID)
    except CompileError:
        logger.exception("Invalid X2I rule data, aborting startup")
        raise

    app = create_app(ConnieBot(holder), bot_token=bot_token)

    logger.info("Setup complete. Starting Slack bot in Socket Mode...")
    if config.SLACK_CHANNEL_ID:
        logger.info("Watching channel: %s", config.SLACK_CHANNEL_ID)
    else:
        logger.info("Watching all channels the bot is in")

    handler = SocketModeHandler(app, app_token)
    handler.start()


if __name__ == "__main__":
    main()
