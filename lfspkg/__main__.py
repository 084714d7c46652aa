# lfspkg/__main__.py
import sys

from lfspkg.cli import main

if __name__ == "__main__":
    sys.exit(main())
