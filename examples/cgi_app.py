#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
Serve a CGI program from an ASGI server.

Run with:
    gunicorn -k asgi examples.cgi_app:app

Test with:
    curl http://127.0.0.1:8000/
    curl http://127.0.0.1:8000/?name=cgi
    curl http://127.0.0.1:8000/missing
    curl -i http://127.0.0.1:8000/?name=error
    curl -X POST http://127.0.0.1:8000/ -d "test data"

Set CGI_STREAMING=1 to forward the output as the program writes it.
"""

import os
import sys

from cgibridge.asgi import CGIApp
from cgibridge.glogging import setup_logging

HERE = os.path.dirname(os.path.abspath(__file__))
SCRIPT = os.path.join(HERE, "cgi-bin", "hello.py")

setup_logging(os.environ.get("CGI_LOGLEVEL", "info"))

app = CGIApp(
    sys.executable, [SCRIPT],
    streaming=os.environ.get("CGI_STREAMING", "false") in ("1", "true"),
    env={"PYTHONUNBUFFERED": "1"},
)
