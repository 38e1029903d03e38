"""
Example FastAPI application.

Exposes two plain Python functions to browser scripts and serves a page that
calls them. Run it with: uvicorn bindrpc.main:app --reload

Key concepts:
- RpcRouter: binds each function once at import time and mounts it at /rpc/<name>
- CORS middleware: lets a frontend served from another origin call the functions
- Index page: carries the small `call(name, ...args)` helper a script uses
"""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from bindrpc.config import CORS_ORIGINS, LOG_LEVEL, RPC_PREFIX
from bindrpc.numeric import Uint8
from bindrpc.routers.rpc import RpcRouter

logger = logging.getLogger(__name__)
logging.getLogger("bindrpc").setLevel(LOG_LEVEL)


def add(a: int, b: float, c: Uint8) -> tuple[float, Exception | None]:
    """Some function you'd like to call from JavaScript."""
    return a + b + c, None


def echo(s: str) -> tuple[str, Exception | None]:
    return s * 2, None


rpc = RpcRouter()
rpc.add_function(add)
rpc.add_function(echo)

app = FastAPI(title="bindrpc", version="0.1.0")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions (e.g. raised by a bound function) so the response still gets CORS headers."""
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    traceback.print_exc()
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rpc)


INDEX_PAGE = """<!DOCTYPE html>
<html lang="en">
  <title>bindrpc</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <body>
    <script>
      function call(func, ...args) {
        return new Promise((resolve, reject) => {
          var request = new XMLHttpRequest();
          request.open('POST', '%(prefix)s/' + func, true);

          request.onload = function() {
            if (request.status === 200) {
              resolve(request.responseText ? JSON.parse(request.responseText) : null);
            } else {
              reject(JSON.parse(request.responseText));
            }
          };

          request.onerror = function() {
            reject(request.responseText);
          };

          request.send(JSON.stringify(args));
        });
      }

      function add_example() {
        call('add', 1, 5, 10).then(function(result) {
          alert("Add Result: " + result);
        }, function(err) {
          alert("Error: " + err);
        });
      }

      function echo_example() {
        call('echo', 'double me').then(function(result) {
          alert("Echo Result: " + result);
        }, function(err) {
          alert("Error: " + err);
        });
      }
    </script>

    <button onClick="add_example()">1 + 5 + 10</button>
    <button onClick="echo_example()">Hello</button>
  </body>
</html>
"""


@app.get("/", response_class=HTMLResponse)
async def index():
    """Example page that calls the RPC functions on button press."""
    return INDEX_PAGE % {"prefix": RPC_PREFIX}


@app.get("/api/health")
async def health():
    """Simple health check endpoint. Returns {"status": "ok"} if the server is running."""
    return {"status": "ok", "functions": sorted(rpc.functions)}
