#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
CGI response header parsing.

A CGI program writes a header block, a blank line and the body. The
scanner locates the blank line in raw output that may still be arriving;
the head parser turns the bytes before it into a status and headers.
"""

import enum
import re

# RFC9110 5.6.2: token = 1*tchar
RFC9110_5_6_2_TOKEN_SPECIALS = r"!#$%&'*+-.^_`|~"
PROLOGUE_RE = re.compile(rb"[%s0-9a-zA-Z]+[ \t]*" % (
    re.escape(RFC9110_5_6_2_TOKEN_SPECIALS).encode("ascii")))
STATUS_LINE_PREFIX = b"HTTP/"
STATUS_LINE_RE = re.compile(r"HTTP/\d+(?:\.\d+)?\s+(\d{3})", re.IGNORECASE)
STATUS_RE = re.compile(r"(\d{3})")

DEFAULT_STATUS = 200


class Scan(enum.Enum):
    FOUND = "found"
    NEED_MORE_DATA = "need more data"
    BAD_PROLOGUE = "bad prologue"
    NO_BOUNDARY = "no boundary"


def check_prologue(data):
    """Tell whether ``data`` starts like a CGI header block.

    Returns True for a status line or a ``name:`` field, False when the
    output cannot be a header block, None when more bytes are needed.
    """
    if data.startswith(STATUS_LINE_PREFIX):
        return True
    if len(data) < len(STATUS_LINE_PREFIX) and \
            STATUS_LINE_PREFIX.startswith(data):
        return None

    m = PROLOGUE_RE.match(data)
    if m is None:
        return False
    end = m.end()
    if end == len(data):
        return None
    return data[end:end + 1] == b":"


def find_blank_line(data, start=0):
    """Return the offset just past the first blank line, or -1.

    A blank line is a LF followed by LF or by CRLF, which covers both
    CRLFCRLF and LFLF terminated header blocks. The earliest terminator
    wins, rather than preferring CRLFCRLF over an earlier LFLF.
    """
    pos = data.find(b"\n", start)
    while pos != -1:
        nxt = pos + 1
        if data[nxt:nxt + 1] == b"\n":
            return nxt + 1
        if data[nxt:nxt + 2] == b"\r\n":
            return nxt + 2
        pos = data.find(b"\n", nxt)
    return -1


def scan_boundary(data, start=0):
    """Locate the header/body boundary in ``data``.

    Returns a ``(Scan, offset)`` pair. ``offset`` is the index of the
    first body byte when the result is ``Scan.FOUND`` and -1 otherwise.
    The blank line search begins at ``start``.
    """
    prologue = check_prologue(data)
    if prologue is None:
        return Scan.NEED_MORE_DATA, -1
    if not prologue:
        return Scan.BAD_PROLOGUE, -1

    offset = find_blank_line(data, start)
    if offset < 0:
        return Scan.NO_BOUNDARY, -1
    return Scan.FOUND, offset


class HeadScanner(object):
    """Accumulates output until the header boundary can be decided.

    Data is appended to one growing buffer. The blank line search resumes
    where the previous one stopped, less the two bytes a terminator may
    straddle, so each byte is scanned a bounded number of times.
    """

    def __init__(self):
        self.data = bytearray()
        self.result = Scan.NEED_MORE_DATA
        self.offset = -1
        self._cursor = 0

    def __len__(self):
        return len(self.data)

    @property
    def done(self):
        return self.result in (Scan.FOUND, Scan.BAD_PROLOGUE)

    def feed(self, chunk):
        self.data.extend(chunk)
        if self.done:
            return self.result

        self.result, self.offset = scan_boundary(self.data, self._cursor)
        if self.result is Scan.NO_BOUNDARY:
            self._cursor = max(0, len(self.data) - 2)
        return self.result

    def head(self):
        return bytes(self.data[:self.offset])

    def rest(self):
        """Bytes after the boundary, or everything when none was found."""
        if self.result is Scan.FOUND:
            return bytes(self.data[self.offset:])
        return bytes(self.data)


class CGIHead(object):

    def __init__(self, headers=None, status=DEFAULT_STATUS, has_status=False):
        self.headers = headers or []
        self.status = status
        self.has_status = has_status

    def __repr__(self):
        return "<CGIHead %d %r>" % (self.status, self.headers)

    @property
    def empty(self):
        return not self.headers and not self.has_status


def parse_head(data):
    """Parse a CGI header block (without its terminating blank line).

    A leading ``HTTP/x.y NNN`` line and ``Status:`` fields set the
    status and are never returned as headers. Repeated fields are
    combined with ``", "`` in first-seen order, except ``Set-Cookie``.
    Lines without a colon are skipped.
    """
    text = bytes(data).decode("latin-1").replace("\r\n", "\n")
    lines = [line for line in text.split("\n") if line]

    status = DEFAULT_STATUS
    has_status = False

    if lines and lines[0].startswith("HTTP/"):
        m = STATUS_LINE_RE.match(lines[0])
        if m:
            status = int(m.group(1))
            has_status = True
        lines = lines[1:]

    headers = []
    index = {}
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep:
            continue
        name = name.strip()
        value = value.strip()
        if not name:
            continue

        lname = name.lower()
        if lname == "status":
            m = STATUS_RE.match(value)
            if m:
                status = int(m.group(1))
                has_status = True
            continue

        if lname == "set-cookie":
            headers.append((name, value))
        elif lname in index:
            pos = index[lname]
            first, combined = headers[pos]
            headers[pos] = (first, "%s, %s" % (combined, value))
        else:
            index[lname] = len(headers)
            headers.append((name, value))

    return CGIHead(headers, status, has_status)
