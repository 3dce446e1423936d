import sys

from linsim.main import main

sys.exit(main())
