#!/usr/bin/env python3
#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
A classic CGI program.

Reads the request from the environment and stdin and writes a header
block, a blank line and the body to stdout.
"""

import os
import sys
from urllib.parse import parse_qs


def main():
    query = parse_qs(os.environ.get("QUERY_STRING", ""))
    name = query.get("name", ["World"])[0]

    body = ""
    if os.environ.get("CONTENT_LENGTH"):
        body = sys.stdin.read()

    if os.environ.get("PATH_INFO") == "/missing":
        sys.stdout.write("Status: 404 Not Found\r\n")
        sys.stdout.write("Content-Type: text/plain\r\n\r\n")
        sys.stdout.write("Nothing here.\n")
        return

    if name == "error":
        sys.stderr.write("refusing to greet %r\n" % name)
        sys.exit(1)

    sys.stdout.write("Content-Type: text/plain; charset=utf-8\r\n")
    sys.stdout.write("X-Request-Method: %s\r\n" % os.environ["REQUEST_METHOD"])
    sys.stdout.write("\r\n")
    sys.stdout.write("Hello, %s!\n" % name)
    if body:
        sys.stdout.write("You sent: %s\n" % body)


if __name__ == "__main__":
    main()
