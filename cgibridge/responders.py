#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
Responders turn the output of a CGI program into a :class:`Response`.

Two strategies exist. :class:`BatchResponder` waits for the program to
exit and builds a complete response. :class:`StreamingResponder` only
waits for the header block and forwards the body as it is produced.
"""

import logging
import re

from cgibridge import util
from cgibridge.http import Response
from cgibridge.parser import HeadScanner, Scan, parse_head, scan_boundary
from cgibridge.process import run_in_background

log = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
MALFORMED_MESSAGE = b"Malformed CGI response (no headers)."

CONTROL_RE = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]+")


def safe_header_value(data, limit=1024):
    """Make diagnostic output fit in a single header line."""
    text = data.decode("utf-8", "replace")
    text = text.encode("latin-1", "replace").decode("latin-1")
    return CONTROL_RE.sub(" ", text).strip()[:limit]


def build_response(head, body=b""):
    """Response carrying the status and forwardable headers of ``head``."""
    headers = [(name, value) for name, value in head.headers
               if not util.is_hoppish(name)]
    resp = Response(head.status, headers, body)
    if not resp.has_header("Content-Type"):
        resp.set_header("Content-Type", DEFAULT_CONTENT_TYPE)
    return resp


async def prefixed_stream(prefix, child, chunk_size=util.CHUNK_SIZE):
    """Yield ``prefix`` and then the rest of the child's stdout.

    Closing the generator before the output ends stops reading and
    terminates the child.
    """
    complete = False
    try:
        if prefix:
            yield prefix
        while True:
            chunk = await child.stdout.read(chunk_size)
            if not chunk:
                break
            yield chunk
        complete = True
    finally:
        if not complete:
            log.debug("Response body of %r closed early", child)
            child.terminate()


class Responder(object):

    # whether stderr and the exit status are left unobserved
    streaming = False

    def __init__(self, cfg):
        self.cfg = cfg

    async def respond(self, child):
        """Build the response for the running ``child``."""
        raise NotImplementedError()


class BatchResponder(Responder):

    async def respond(self, child):
        try:
            stdout, stderr, exit_code = await child.communicate()
        except BaseException:
            child.terminate()
            raise

        result, offset = scan_boundary(stdout)
        if result is Scan.FOUND:
            head = parse_head(stdout[:offset])
            if not head.empty:
                return self.complete(child, head, stdout[offset:], stderr,
                                     exit_code)

        return self.malformed(child, stdout, stderr, exit_code)

    def complete(self, child, head, body, stderr, exit_code):
        resp = build_response(head, body)
        if exit_code:
            log.warning("CGI program %r exited with status %s",
                        child.command, exit_code)
            resp.set_header("X-CGI-Exit-Code", str(exit_code))
        if stderr:
            value = safe_header_value(stderr, self.cfg.stderr_header_limit)
            log.warning("CGI program %r wrote to stderr: %s",
                        child.command, value)
            resp.set_header("X-CGI-StdErr", value)
        if not resp.has_header("Content-Length"):
            resp.set_header("Content-Length", str(len(body)))
        return resp

    def malformed(self, child, stdout, stderr, exit_code):
        if stdout:
            body = stdout
            content_type = DEFAULT_CONTENT_TYPE
        else:
            body = stderr or MALFORMED_MESSAGE
            content_type = TEXT_CONTENT_TYPE

        if exit_code == 0 and stdout:
            status = 200
            log.debug("CGI program %r sent no headers, passing output "
                      "through", child.command)
        else:
            status = 500
            log.warning("Malformed response from CGI program %r "
                        "(exit status %s)", child.command, exit_code)

        return Response(status, [
            ("Content-Type", content_type),
            ("Content-Length", str(len(body))),
            ("X-CGI-Exit-Code", str(exit_code)),
        ], body)


class StreamingResponder(Responder):

    streaming = True

    async def respond(self, child):
        run_in_background(self.watch(child), name="cgi-wait-%s" % child.pid)

        scanner = HeadScanner()
        try:
            while True:
                chunk = await child.stdout.read(util.CHUNK_SIZE)
                if not chunk:
                    break
                scanner.feed(chunk)
                if scanner.done:
                    break
                if len(scanner) > self.cfg.header_limit:
                    log.debug("No CGI header block within %d bytes from %r",
                              self.cfg.header_limit, child.command)
                    break
        except BaseException:
            child.terminate()
            raise

        if scanner.result is Scan.FOUND:
            head = parse_head(scanner.head())
            if not head.empty:
                body = prefixed_stream(scanner.rest(), child)
                return build_response(head, body)

        # no usable header block, pass everything read so far through
        body = prefixed_stream(bytes(scanner.data), child)
        return Response(200, [("Content-Type", DEFAULT_CONTENT_TYPE)], body)

    async def watch(self, child):
        # The response may already be on the wire; the exit status can
        # only be logged.
        try:
            exit_code = await child.wait()
        except Exception as e:
            log.debug("Failed waiting for %r: %s", child, e)
            return
        if exit_code:
            log.info("CGI program %r exited with status %s",
                     child.command, exit_code)
