"""
Thin wrapper for the exporter entry point.

Use: python -m etp_exporter sync | convert
"""

import sys

from etp_exporter.main import main

if __name__ == "__main__":
    sys.exit(main())
