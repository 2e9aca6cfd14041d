"""Module entry point: ``python -m virshle``."""

import sys

from virshle import cli

if __name__ == "__main__":
    sys.exit(cli.main())
