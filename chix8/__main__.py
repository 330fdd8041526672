import sys

from chix8.cli import main

sys.exit(main())
