#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
ASGI application serving every request with one CGI program.

Run with:
    gunicorn -k asgi 'myapp:app'

where ``myapp.app = CGIApp("/usr/lib/cgi-bin/hello.sh")``.
"""

import logging

from cgibridge.config import Config
from cgibridge.errors import SpawnError
from cgibridge.gateway import execute_cgi
from cgibridge.http import Request, Response

log = logging.getLogger(__name__)

BAD_GATEWAY = b"Bad Gateway\n"


class CGIApp(object):

    def __init__(self, command, args=None, cfg=None, **options):
        if cfg is None:
            cfg = Config(**options)
        elif options:
            cfg = cfg.copy(**options)
        self.command = command
        self.args = list(args or [])
        self.cfg = cfg

    def __repr__(self):
        return "<CGIApp %r>" % self.command

    async def __call__(self, scope, receive, send):
        if scope["type"] == "lifespan":
            await self.lifespan(receive, send)
        elif scope["type"] == "http":
            await self.handle_http(scope, receive, send)
        else:
            raise ValueError("Unsupported scope type: %s" % scope["type"])

    async def lifespan(self, receive, send):
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    def request_config(self, scope):
        """Fill the settings the scope knows about and the config leaves
        unset: ``remote_addr``, ``script_name`` and ``path_info``."""
        overrides = {}

        client = scope.get("client")
        if client and self.cfg.remote_addr is None:
            overrides["remote_addr"] = client[0]

        root_path = scope.get("root_path", "")
        if self.cfg.script_name is None:
            overrides["script_name"] = root_path
        if self.cfg.path_info is None:
            path = scope.get("path", "")
            if root_path and path.startswith(root_path):
                path = path[len(root_path):]
            overrides["path_info"] = path

        return self.cfg.copy(**overrides)

    async def handle_http(self, scope, receive, send):
        req = Request.from_asgi(scope, receive)
        try:
            resp = await execute_cgi(req, self.command, self.args,
                                     self.request_config(scope))
        except SpawnError:
            log.exception("Error running CGI program %r", self.command)
            resp = Response(502, [
                ("Content-Type", "text/plain; charset=utf-8"),
                ("Content-Length", str(len(BAD_GATEWAY))),
            ], BAD_GATEWAY)
        await resp.send(send)
