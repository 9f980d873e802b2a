"""Allow `python -m link_archiver`."""

import sys

from .cli import main

sys.exit(main())
