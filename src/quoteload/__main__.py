import sys

from quoteload.loadtester import main

if __name__ == "__main__":
    sys.exit(main())
