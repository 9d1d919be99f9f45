"""Allow running QtBuilder as ``python -m qtbuilder``."""

import sys

from qtbuilder.cli import main


if __name__ == "__main__":
    sys.exit(main())
