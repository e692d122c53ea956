#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import logging

from cgibridge.config import Config
from cgibridge.environ import build_environ, process_environ
from cgibridge.process import spawn

log = logging.getLogger(__name__)


async def execute_cgi(req, command, args=None, cfg=None, **options):
    """Run ``command`` as a CGI program for ``req`` and return its response.

    Args:
        req: the :class:`~cgibridge.http.Request` to serve
        command: the program to execute
        args: arguments for the program
        cfg: a :class:`~cgibridge.config.Config`; keyword ``options``
             override its settings

    Raises:
        SpawnError: the program could not be started. This is the only
            failure; any output of a started program becomes a response.
    """
    if cfg is None:
        cfg = Config(**options)
    elif options:
        cfg = cfg.copy(**options)

    responder = cfg.responder_class(cfg)

    environ = build_environ(req, cfg)
    env = process_environ(environ, cfg)

    log.debug("%s %s -> %s", req.method, req.url, command)
    child = await spawn(command, args, env, req.body,
                        streaming=responder.streaming)
    return await responder.respond(child)
