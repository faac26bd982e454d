import sys

from laborcompare.cli import main

if __name__ == "__main__":
    sys.exit(main())
