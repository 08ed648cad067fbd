import sys

from loan_threshold.cli import main

if __name__ == "__main__":
    sys.exit(main())
