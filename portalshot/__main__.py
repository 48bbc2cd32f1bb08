#!/usr/bin/env python3
"""
Entry point for python -m portalshot execution.

This module enables running Portalshot as a Python module:
    python3 -m portalshot --ui
    python3 -m portalshot --screenshot
    python3 -m portalshot --list-displays

The actual CLI logic is in portalshot.cli module.
"""

from portalshot.cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
