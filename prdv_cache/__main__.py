import sys

from prdv_cache.cli import main

sys.exit(main())
