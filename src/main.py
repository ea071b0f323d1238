"""
SiteDiary - Offline-first site diary record store and export engine.

Runs the command-line interface without installing the package.
"""

import sys
from sitediary.interface.cli import main


if __name__ == "__main__":
    sys.exit(main())
