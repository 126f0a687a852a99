import sys

from fwflash.cli import main

sys.exit(main())
