"""Allow running as ``python -m dirvec``."""

import sys

from .cli import main

sys.exit(main())
