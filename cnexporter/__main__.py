import sys

from cnexporter.exporter import main

sys.exit(main())
