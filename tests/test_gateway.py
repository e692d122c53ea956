#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
End to end tests running real CGI programs through execute_cgi.
"""

import json
from unittest import mock

import pytest

from cgibridge.config import Config
from cgibridge.errors import SpawnError
from cgibridge.gateway import execute_cgi
from cgibridge.responders import BatchResponder

from tests.support import cgi_program, iter_chunks, make_request

DUMP_ENV = r'''
import json, os, sys
sys.stdout.write("Content-Type: application/json\n\n")
sys.stdout.write(json.dumps(dict(os.environ)))
'''

ECHO = r'''
import os, sys
data = sys.stdin.buffer.read()
sys.stdout.buffer.write(b"Content-Type: text/plain\r\n")
sys.stdout.buffer.write(b"X-Method: " + os.environ["REQUEST_METHOD"].encode())
sys.stdout.buffer.write(b"\r\n\r\n" + data)
'''

COUNT = r'''
import sys
sys.stdout.write("Status: 200 OK\n\n")
for i in range(5):
    sys.stdout.write("%d\n" % i)
    sys.stdout.flush()
'''


async def run_env(req=None, **options):
    command, args = cgi_program(DUMP_ENV)
    resp = await execute_cgi(req or make_request(), command, args, **options)
    assert resp.status == 200
    return json.loads(await resp.read())


@pytest.mark.asyncio
async def test_environment():
    env = await run_env(remote_addr="127.0.0.1")
    assert env["GATEWAY_INTERFACE"] == "CGI/1.1"
    assert env["REQUEST_METHOD"] == "GET"
    assert env["QUERY_STRING"] == "a=1&b=2"
    assert env["REQUEST_URI"] == "/cgi-bin/test?a=1&b=2"
    assert env["SERVER_NAME"] == "example.com"
    assert env["HTTP_HOST"] == "example.com"
    assert env["REMOTE_ADDR"] == "127.0.0.1"
    assert env["PATH_INFO"] == ""


@pytest.mark.asyncio
async def test_computed_variables_win_over_env():
    env = await run_env(env={"REQUEST_METHOD": "DELETE",
                             "HTTP_HOST": "evil.example.com",
                             "APP_MODE": "test"})
    assert env["REQUEST_METHOD"] == "GET"
    assert env["HTTP_HOST"] == "example.com"
    assert env["APP_MODE"] == "test"


@pytest.mark.asyncio
async def test_inherited_environment():
    fake = {"PATH": "/usr/bin:/bin", "HTTP_PROXY": "http://evil:3128",
            "CGI_TEST_INHERITED": "yes"}
    with mock.patch.dict("os.environ", fake):
        env = await run_env()
        assert env["CGI_TEST_INHERITED"] == "yes"
        assert "HTTP_PROXY" not in env

        env = await run_env(inherit_env=False)
        assert "CGI_TEST_INHERITED" not in env


@pytest.mark.asyncio
async def test_request_body_piped_to_stdin():
    req = make_request(method="POST", headers=[
        ("Host", "example.com"),
        ("Content-Length", "11"),
    ], body=iter_chunks(b"hello ", b"world"))
    command, args = cgi_program(ECHO)
    resp = await execute_cgi(req, command, args)
    assert resp.status == 200
    assert resp.get_header("X-Method") == "POST"
    assert resp.get_header("Content-Length") == "11"
    assert resp.body == b"hello world"


@pytest.mark.asyncio
async def test_streaming():
    command, args = cgi_program(COUNT)
    resp = await execute_cgi(make_request(), command, args, streaming=True)
    assert resp.status == 200
    assert resp.streaming
    assert not resp.has_header("Content-Length")
    assert await resp.read() == b"0\n1\n2\n3\n4\n"


@pytest.mark.asyncio
async def test_options_override_config():
    cfg = Config(streaming=True)
    command, args = cgi_program(COUNT)
    resp = await execute_cgi(make_request(), command, args, cfg,
                             responder_class="batch")
    assert not resp.streaming
    assert resp.body == b"0\n1\n2\n3\n4\n"
    assert cfg.responder_class is not BatchResponder


@pytest.mark.asyncio
async def test_missing_program(tmp_path):
    command = str(tmp_path / "missing.cgi")
    with pytest.raises(SpawnError) as exc_info:
        await execute_cgi(make_request(), command)
    assert exc_info.value.command == command
