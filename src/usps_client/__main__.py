"""Entry point for python -m usps_client."""

import sys

from usps_client.cli import main

if __name__ == "__main__":
    sys.exit(main())
