import sys

from buildstamp.cli import main


sys.exit(main())
