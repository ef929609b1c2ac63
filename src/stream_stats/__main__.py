import sys

from stream_stats.cli import main

sys.exit(main())
