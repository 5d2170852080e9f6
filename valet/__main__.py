import sys

from valet.console import main

sys.exit(main())
