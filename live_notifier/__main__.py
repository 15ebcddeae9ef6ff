import sys

from live_notifier.cli import main

sys.exit(main())
