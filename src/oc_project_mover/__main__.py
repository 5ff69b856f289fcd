"""
Top-level entry point: python -m oc_project_mover -p <project> -s <url> -d <url>

Requires SOURCE_TOKEN and DEST_TOKEN in the environment.
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
