"""
CLI entry point for the indicator engine.

Allows running as: python -m ta_engine
"""

import sys

from ta_engine.main import main

if __name__ == "__main__":
    sys.exit(main())
