#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import sys
import textwrap

from cgibridge.http import Request

PYTHON = sys.executable


def cgi_program(source):
    """Command and arguments running ``source`` with this interpreter."""
    return PYTHON, ["-c", textwrap.dedent(source)]


def output_program(stdout=b"", stderr=b"", exit_code=0):
    """A program writing fixed bytes to stdout and stderr, then exiting."""
    source = (
        "import sys\n"
        "sys.stdout.buffer.write(%r)\n"
        "sys.stdout.flush()\n"
        "sys.stderr.buffer.write(%r)\n"
        "sys.stderr.flush()\n"
        "sys.exit(%d)\n" % (stdout, stderr, exit_code)
    )
    return PYTHON, ["-c", source]


def make_request(url="http://example.com/cgi-bin/test?a=1&b=2",
                 method="GET", headers=None, body=None):
    if headers is None:
        headers = [("Host", "example.com")]
    return Request(method, url, headers, body)


async def iter_chunks(*chunks):
    for chunk in chunks:
        yield chunk
