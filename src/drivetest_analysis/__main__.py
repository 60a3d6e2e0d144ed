"""Entry point for running the analysis CLI as a module."""

import sys

from drivetest_analysis.cli import main


if __name__ == "__main__":
    sys.exit(main())
