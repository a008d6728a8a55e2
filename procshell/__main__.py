"""Allow running procshell as a module: python -m procshell."""

import sys

from .cli import main

sys.exit(main())
