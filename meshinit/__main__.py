"""
Entry point for running the supervisor via `python -m meshinit`.

Takes the same flags as the `meshinit` command.
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
