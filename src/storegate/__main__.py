"""Entry point for python -m storegate."""

import sys

from storegate.cli import main

sys.exit(main())
