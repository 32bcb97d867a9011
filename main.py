#!/usr/bin/env python3
"""
Foursome Grouping Engine
Entry point for the game day grouping system.
"""

import sys

if __name__ == "__main__":
    from foursome_grouping.cli import main
    sys.exit(main())
