"""
Module execution entry point.

Allows running with: python -m support_cli
"""

import sys
from support_cli.main import main

if __name__ == "__main__":
    sys.exit(main())
