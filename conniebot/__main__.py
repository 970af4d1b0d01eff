"""Package entry point for ``python -m conniebot``.

WHY: Operators start the bot with ``python -m conniebot --slack``; the
same command without ``--slack`` converts text on the terminal.

HOW: Checks sys.argv for the ``--slack`` flag. If present, starts the
Slack bot. Otherwise, delegates to the CLI's main() function.

RULES:
- ``--slack`` starts the Socket Mode bot
- Without ``--slack``, falls through to the CLI
"""

import sys

if __name__ == "__main__":
    if "--slack" in sys.argv:
        from conniebot.slack.bot import main as bot_main
        bot_main()
    else:
        from conniebot.cli import main
        sys.exit(main())
