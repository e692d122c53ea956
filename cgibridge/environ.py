#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import logging
import os

from cgibridge import util

log = logging.getLogger(__name__)

# RFC 3875 4.1
RESERVED_NAMES = frozenset("""
    AUTH_TYPE CONTENT_LENGTH CONTENT_TYPE GATEWAY_INTERFACE PATH_INFO
    PATH_TRANSLATED QUERY_STRING REMOTE_ADDR REMOTE_HOST REMOTE_IDENT
    REMOTE_USER REQUEST_METHOD REQUEST_URI SCRIPT_NAME SERVER_NAME
    SERVER_PORT SERVER_PROTOCOL SERVER_SOFTWARE
    """.split())

RESERVED_PREFIXES = ("HTTP_",)

# always present in a built environment, possibly empty
STANDARD_KEYS = (
    "GATEWAY_INTERFACE",
    "PATH_INFO",
    "PATH_TRANSLATED",
    "QUERY_STRING",
    "REMOTE_ADDR",
    "REMOTE_HOST",
    "REQUEST_METHOD",
    "REQUEST_URI",
    "SCRIPT_NAME",
    "SERVER_NAME",
    "SERVER_PORT",
    "SERVER_PROTOCOL",
    "SERVER_SOFTWARE",
)

DEFAULT_PORTS = {
    "http": "80",
    "https": "443",
}


def is_reserved(name):
    """Return True if ``name`` is a variable set by the CGI gateway."""
    name = name.upper()
    return name in RESERVED_NAMES or name.startswith(RESERVED_PREFIXES)


def network_protocol(req, cfg):
    if cfg.network_protocol:
        return cfg.network_protocol
    if req.scheme in DEFAULT_PORTS:
        return req.scheme
    return None


def build_environ(req, cfg):
    """Compute the CGI meta-variables for ``req``.

    The result only depends on the request and the config; no process
    state is read.
    """
    protocol = network_protocol(req, cfg)

    host = req.get_header("host")
    if host is None:
        host = req.netloc.rpartition("@")[2]
    server_name, host_port = util.split_host(host)
    server_port = cfg.server_port or host_port or \
        DEFAULT_PORTS.get(protocol, "")

    request_uri = req.path
    if req.query:
        request_uri = "%s?%s" % (request_uri, req.query)

    environ = {
        "GATEWAY_INTERFACE": "CGI/1.1",
        "PATH_INFO": cfg.path_info or "",
        "PATH_TRANSLATED": cfg.path_translated or "",
        "QUERY_STRING": req.query,
        "REMOTE_ADDR": cfg.remote_addr or "",
        "REMOTE_HOST": cfg.remote_host or "",
        "REQUEST_METHOD": req.method,
        "REQUEST_URI": request_uri,
        "SCRIPT_NAME": cfg.script_name or "",
        "SERVER_NAME": server_name,
        "SERVER_PORT": server_port,
        "SERVER_PROTOCOL": cfg.server_protocol or "HTTP/1.1",
        "SERVER_SOFTWARE": cfg.server_software or "",
    }

    for hdr_name, hdr_value in req.headers:
        key = hdr_name.strip().upper().replace("-", "_")
        if key == "CONTENT_TYPE":
            environ['CONTENT_TYPE'] = hdr_value
            continue
        elif key == "CONTENT_LENGTH":
            environ['CONTENT_LENGTH'] = hdr_value
            continue
        elif key == "AUTHORIZATION":
            environ['AUTH_TYPE'] = hdr_value.strip().split(" ", 1)[0]

        key = 'HTTP_' + key
        if key in environ:
            hdr_value = "%s, %s" % (environ[key], hdr_value)
        environ[key] = hdr_value

    return environ


def process_environ(environ, cfg):
    """Layer the CGI meta-variables over the child's base environment.

    The base is the current process environment (unless ``inherit_env``
    is off) updated with ``cfg.env``. Computed CGI variables always win.
    Inherited variables with reserved names (``HTTP_PROXY`` included)
    are dropped.
    """
    env = {}
    if cfg.inherit_env:
        env.update((k, v) for k, v in os.environ.items()
                   if not is_reserved(k))

    for name, value in cfg.env.items():
        if is_reserved(name):
            log.warning("Ignoring reserved CGI variable %r in env", name)
            continue
        env[name] = value

    env.update(environ)
    return env
