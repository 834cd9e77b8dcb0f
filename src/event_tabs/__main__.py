"""
Package entry point for python -m execution.

USAGE:
    python -m event_tabs dashboard   # Launch web dashboard
    python -m event_tabs render FILE # Print sparkline SVG
    python -m event_tabs request     # Print fetch URL
"""

import sys

from event_tabs.cli import main

if __name__ == "__main__":
    sys.exit(main())
