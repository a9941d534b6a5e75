"""Run the supervisor from a TOML config file: `python run.py meshinit.toml`."""

import sys

from meshinit.cli import run_file

if __name__ == "__main__":
    sys.exit(run_file())
