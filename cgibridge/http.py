#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
Request and response objects exchanged with the HTTP server.

Header names and values are kept as ``str``. ASGI carries them as bytes,
which are decoded and encoded as latin-1 so no byte is ever altered.
"""

from urllib.parse import quote, urlsplit

from cgibridge import util


def _find_header(headers, name):
    lname = name.lower()
    return [v for k, v in headers if k.lower() == lname]


async def _receive_body(receive):
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] == "http.disconnect":
            return
        more_body = message.get("more_body", False)
        chunk = message.get("body", b"")
        if chunk:
            yield chunk


class Request(object):
    """An inbound HTTP request.

    Args:
        method: HTTP method
        url: absolute request URL
        headers: ordered list of ``(name, value)`` pairs
        body: async iterable of bytes, or None when there is no body
    """

    def __init__(self, method, url, headers=None, body=None):
        self.method = method.upper()
        self.url = url
        self.headers = list(headers or [])
        self.body = body

        parts = urlsplit(url)
        self.scheme = parts.scheme.lower()
        self.netloc = parts.netloc
        self.path = parts.path or "/"
        self.query = parts.query

    def __repr__(self):
        return "<Request %s %s>" % (self.method, self.url)

    def get_header(self, name, default=None):
        """Return the values of ``name`` joined with ``", "``."""
        values = _find_header(self.headers, name)
        if not values:
            return default
        return ", ".join(values)

    @classmethod
    def from_asgi(cls, scope, receive):
        """Build a request from an ASGI ``http`` scope."""
        headers = [(name.decode("latin-1"), value.decode("latin-1"))
                   for name, value in scope.get("headers", [])]

        scheme = scope.get("scheme", "http")
        host = None
        for name, value in headers:
            if name.lower() == "host":
                host = value
                break
        if host is None:
            server = scope.get("server")
            if server and server[1] is not None:
                host = "%s:%s" % server
            elif server:
                host = server[0]
            else:
                host = ""

        raw_path = scope.get("raw_path")
        if raw_path:
            path = raw_path.decode("latin-1")
        else:
            path = quote(scope.get("path", "/"), safe="/%;=@:!$&'()*+,~")

        url = "%s://%s%s" % (scheme, host, path)
        query = scope.get("query_string", b"").decode("latin-1")
        if query:
            url = "%s?%s" % (url, query)

        # HTTP/2 and HTTP/3 frame the body themselves and may send one
        # without Content-Length.
        content_length = _find_header(headers, "content-length")
        if content_length:
            has_body = content_length[0].strip() != "0"
        elif _find_header(headers, "transfer-encoding"):
            has_body = True
        else:
            has_body = scope.get("http_version", "1.1") not in ("1.0", "1.1")

        body = _receive_body(receive) if has_body else None

        return cls(scope.get("method", "GET"), url, headers, body)


class Response(object):
    """An outbound HTTP response.

    ``body`` is either ``bytes`` or an async iterator of ``bytes``.
    """

    def __init__(self, status=200, headers=None, body=b""):
        self.status = status
        self.headers = list(headers or [])
        self.body = body

    def __repr__(self):
        return "<Response %d>" % self.status

    @property
    def streaming(self):
        return not isinstance(self.body, (bytes, bytearray))

    def get_header(self, name, default=None):
        values = _find_header(self.headers, name)
        if not values:
            return default
        return values[0]

    def has_header(self, name):
        return bool(_find_header(self.headers, name))

    def set_header(self, name, value):
        lname = name.lower()
        headers = [(k, v) for k, v in self.headers if k.lower() != lname]
        headers.append((name, value))
        self.headers = headers

    async def read(self):
        """Return the whole body, draining it when streaming."""
        if not self.streaming:
            return bytes(self.body)
        chunks = []
        async for chunk in self.body:
            chunks.append(chunk)
        return b"".join(chunks)

    async def send(self, send):
        """Emit this response through an ASGI ``send`` callable."""
        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": [(util.to_bytestring(k.lower()), util.to_bytestring(v))
                        for k, v in self.headers],
        })

        if not self.streaming:
            await send({
                "type": "http.response.body",
                "body": bytes(self.body),
                "more_body": False,
            })
            return

        try:
            async for chunk in self.body:
                await send({
                    "type": "http.response.body",
                    "body": chunk,
                    "more_body": True,
                })
        finally:
            aclose = getattr(self.body, "aclose", None)
            if aclose is not None:
                await aclose()

        await send({
            "type": "http.response.body",
            "body": b"",
            "more_body": False,
        })
