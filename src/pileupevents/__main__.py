"""Package entry point for ``python -m pileupevents``."""

import sys

from pileupevents.cli import main

if __name__ == "__main__":
    sys.exit(main())
