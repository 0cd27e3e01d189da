"""
dyno - entry point wrapper

Keeps `python main.py ...` working from a source checkout; the real CLI
lives in dynoclient/cli_main.py (installed as the `dyno` script).
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from dynoclient.cli_main import main

if __name__ == "__main__":
    sys.exit(main())
