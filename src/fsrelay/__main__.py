"""Allow running as `python -m fsrelay`."""

import sys

from .cli import main


sys.exit(main())
