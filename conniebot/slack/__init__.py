"""Slack integration for conniebot.

WHY: The bot lives where the conversations happen. This package answers
X2I spans in Slack messages, keeps replies in sync with edits and serves
a few prefix commands.

HOW: The bot runs as a Socket Mode app (slack-bolt). bot.py handles
events, messages.py builds reply texts and blocks, replies.py remembers
which replies belong to which message.

RULES:
- Socket Mode requires SLACK_BOT_TOKEN and SLACK_APP_TOKEN
- The engine is only ever read through EngineHolder.engine
"""
