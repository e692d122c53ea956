#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
Tests for the ASGI application.
"""

import json
from unittest import mock

import pytest

from cgibridge.asgi import BAD_GATEWAY, CGIApp
from cgibridge.config import Config

from tests.support import cgi_program

DUMP_ENV = r'''
import json, os, sys
body = sys.stdin.read()
keys = ("REQUEST_METHOD", "SCRIPT_NAME", "PATH_INFO", "QUERY_STRING",
        "REMOTE_ADDR", "SERVER_NAME", "SERVER_PORT", "CONTENT_LENGTH")
data = dict((k, os.environ.get(k)) for k in keys)
data["body"] = body
sys.stdout.write("Content-Type: application/json\r\n")
sys.stdout.write("Connection: close\r\n\r\n")
sys.stdout.write(json.dumps(data))
'''


def http_scope(**kwargs):
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/app/run/extra",
        "raw_path": b"/app/run/extra",
        "query_string": b"q=1",
        "root_path": "/app/run",
        "headers": [(b"host", b"example.com:8000")],
        "server": ("127.0.0.1", 8000),
        "client": ("10.0.0.7", 52000),
    }
    scope.update(kwargs)
    return scope


async def call(app, scope, *messages):
    receive = mock.AsyncMock(side_effect=list(messages) or [
        {"type": "http.request", "body": b"", "more_body": False}])
    send = mock.AsyncMock()
    await app(scope, receive, send)
    return [c.args[0] for c in send.await_args_list]


def response_body(messages):
    return b"".join(m.get("body", b"") for m in messages[1:])


@pytest.mark.asyncio
async def test_http():
    command, args = cgi_program(DUMP_ENV)
    app = CGIApp(command, args)
    messages = await call(app, http_scope())

    start = messages[0]
    assert start["type"] == "http.response.start"
    assert start["status"] == 200
    headers = dict(start["headers"])
    assert headers[b"content-type"] == b"application/json"
    assert b"connection" not in headers
    assert messages[-1]["more_body"] is False

    data = json.loads(response_body(messages))
    assert data["REQUEST_METHOD"] == "GET"
    assert data["SCRIPT_NAME"] == "/app/run"
    assert data["PATH_INFO"] == "/extra"
    assert data["QUERY_STRING"] == "q=1"
    assert data["REMOTE_ADDR"] == "10.0.0.7"
    assert data["SERVER_NAME"] == "example.com"
    assert data["SERVER_PORT"] == "8000"
    assert data["CONTENT_LENGTH"] is None


@pytest.mark.asyncio
async def test_http_body_streaming():
    command, args = cgi_program(DUMP_ENV)
    app = CGIApp(command, args, streaming=True)
    scope = http_scope(method="POST", headers=[
        (b"host", b"example.com"),
        (b"content-length", b"7"),
    ])
    messages = await call(
        app, scope,
        {"type": "http.request", "body": b"abc", "more_body": True},
        {"type": "http.request", "body": b"defg", "more_body": False},
    )
    assert messages[0]["status"] == 200
    assert all(m["more_body"] for m in messages[1:-1])
    data = json.loads(response_body(messages))
    assert data["REQUEST_METHOD"] == "POST"
    assert data["CONTENT_LENGTH"] == "7"
    assert data["body"] == "abcdefg"


@pytest.mark.asyncio
async def test_http2_body_without_content_length():
    command, args = cgi_program(DUMP_ENV)
    app = CGIApp(command, args)
    scope = http_scope(method="POST", http_version="2",
                       headers=[(b"host", b"example.com")])
    messages = await call(
        app, scope,
        {"type": "http.request", "body": b"payload", "more_body": False},
    )
    assert messages[0]["status"] == 200
    data = json.loads(response_body(messages))
    assert data["body"] == "payload"
    assert data["CONTENT_LENGTH"] is None


@pytest.mark.asyncio
async def test_configured_values_kept():
    command, args = cgi_program(DUMP_ENV)
    cfg = Config(script_name="/cgi-bin/run", path_info="",
                 remote_addr="192.0.2.1")
    app = CGIApp(command, args, cfg)
    data = json.loads(response_body(await call(app, http_scope())))
    assert data["SCRIPT_NAME"] == "/cgi-bin/run"
    assert data["PATH_INFO"] == ""
    assert data["REMOTE_ADDR"] == "192.0.2.1"


def test_request_config_does_not_change_app_config():
    app = CGIApp("/bin/true")
    cfg = app.request_config(http_scope())
    assert cfg.remote_addr == "10.0.0.7"
    assert cfg.script_name == "/app/run"
    assert cfg.path_info == "/extra"
    assert app.cfg.remote_addr is None
    assert app.cfg.script_name is None


@pytest.mark.asyncio
async def test_spawn_error(tmp_path, caplog):
    app = CGIApp(str(tmp_path / "missing.cgi"))
    messages = await call(app, http_scope())
    assert messages[0]["status"] == 502
    assert response_body(messages) == BAD_GATEWAY
    assert "missing.cgi" in caplog.text


@pytest.mark.asyncio
async def test_lifespan():
    app = CGIApp("/bin/true")
    messages = await call(
        app, {"type": "lifespan"},
        {"type": "lifespan.startup"},
        {"type": "lifespan.shutdown"},
    )
    assert messages == [
        {"type": "lifespan.startup.complete"},
        {"type": "lifespan.shutdown.complete"},
    ]


@pytest.mark.asyncio
async def test_unknown_scope():
    app = CGIApp("/bin/true")
    with pytest.raises(ValueError):
        await app({"type": "websocket"}, mock.AsyncMock(), mock.AsyncMock())
