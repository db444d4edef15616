"""
Token Relation Engine CLI entry point.

Usage:
    python -m tokenrel.cli show
    python -m tokenrel.cli generate abc 3
    python -m tokenrel.cli compare 10 IS_PREFIX_OF 101
"""

import sys
from .main import main

if __name__ == "__main__":
    sys.exit(main())
