import sys

from slidesvg.cli import main

sys.exit(main())
