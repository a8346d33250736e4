import sys

from .mcp.server.run_server import main

sys.exit(main())
