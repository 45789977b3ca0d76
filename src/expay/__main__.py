"""Allow running the server with ``python -m expay``."""

import sys

from expay.application.server import main

sys.exit(main())
