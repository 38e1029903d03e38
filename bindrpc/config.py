"""
Application configuration.

Settings are loaded from environment variables with sensible defaults
for local development. In production, you'd set these via .env file or
your hosting platform's environment variable settings.
"""

import os

# URL prefix under which RpcRouter mounts bound functions.
# With the default, a function registered as "add" is reachable at POST /rpc/add.
RPC_PREFIX = os.getenv("BINDRPC_PREFIX", "/rpc")

# The frontend URL, used to configure CORS (Cross-Origin Resource Sharing).
# Browser scripts served from another origin (e.g. localhost:5173) can only
# call the bound functions if their origin is allowed here.
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Extra allowed origins, comma separated: "https://a.example,https://b.example"
CORS_ORIGINS = [FRONTEND_URL] + [
    origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()
]

# Level for the "bindrpc" logger tree (DEBUG, INFO, WARNING, ...).
LOG_LEVEL = os.getenv("BINDRPC_LOG_LEVEL", "INFO").upper()
