#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import importlib
import inspect
from importlib.metadata import entry_points


CHUNK_SIZE = (16 * 1024)

# Headers meaningful only for a single transport connection.
hop_headers = set("""
    connection keep-alive proxy-authenticate proxy-authorization
    te trailers transfer-encoding upgrade
    """.split())

SUPPORTED_RESPONDERS = {
    "batch": "cgibridge.responders.BatchResponder",
    "streaming": "cgibridge.responders.StreamingResponder",
}


def load_entry_point(distribution, group, name):
    for ep in entry_points(group=group, name=name):
        if ep.dist is None or ep.dist.name == distribution:
            return ep.load()
    raise ImportError("Entry point %r not found in %s" % (
        (group, name), distribution))


def load_class(uri, default="batch", section="cgibridge.responders"):
    if inspect.isclass(uri):
        return uri
    if uri.startswith("egg:"):
        # uses entry points
        entry_str = uri.split("egg:")[1]
        try:
            dist, name = entry_str.rsplit("#", 1)
        except ValueError:
            dist = entry_str
            name = default

        try:
            return load_entry_point(dist, section, name)
        except Exception as e:
            raise RuntimeError("class uri %r invalid or not found: %s" % (
                uri, e)) from e

    components = uri.split('.')
    if len(components) == 1:
        if uri.startswith("#"):
            uri = uri[1:]

        if uri in SUPPORTED_RESPONDERS:
            components = SUPPORTED_RESPONDERS[uri].split(".")
        else:
            try:
                return load_entry_point("cgibridge", section, uri)
            except Exception as e:
                raise RuntimeError("class uri %r invalid or not found: %s" % (
                    uri, e)) from e

    klass = components.pop(-1)

    try:
        mod = importlib.import_module('.'.join(components))
    except ImportError as e:
        raise RuntimeError("class uri %r invalid or not found: %s" % (
            uri, e)) from e
    return getattr(mod, klass)


def split_host(host):
    """Split a ``Host`` header value into ``(name, port)``.

    IPv6 literals keep their brackets, as RFC 3875 wants them in
    ``SERVER_NAME``. The port is an empty string when absent.
    """
    if host.startswith("["):
        end = host.find("]")
        if end != -1:
            rest = host[end + 1:]
            port = rest[1:] if rest.startswith(":") else ""
            return host[:end + 1], port
    if host.count(":") == 1:
        name, port = host.split(":", 1)
        return name, port
    return host, ""


def is_hoppish(header):
    return header.lower().strip() in hop_headers


def to_bytestring(value, encoding="latin-1"):
    """Converts a string argument to a byte string"""
    if isinstance(value, bytes):
        return value
    if not isinstance(value, str):
        raise TypeError('%r is not a string' % value)

    return value.encode(encoding)
