"""
Entry point for running the CLI as a module: python -m quickparse
"""

import sys
from quickparse.cli import main

if __name__ == "__main__":
    sys.exit(main())
