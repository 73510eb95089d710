"""Allow running nbuild as ``python -m nbuild``."""

import sys

from nbuild.cli import main

sys.exit(main())
