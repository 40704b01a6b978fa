"""Allow running as: python -m carbo_audit"""

import sys

from carbo_audit.main import cli

if __name__ == "__main__":
    sys.exit(cli(sys.argv[1:]))
