import sys

from gl_enforcer.cli import main

sys.exit(main())
