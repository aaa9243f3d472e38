"""
Integration tests: the guestbook served over real sockets.
"""

import json
import logging
import socket
import threading
import time

import pytest

from guestbook import HTTPServer, ServerState
from guestbook.http.response import ResponseBuilder


def recv_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        try:
            chunk = sock.recv(65536)
        except (ConnectionResetError, socket.timeout):
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


class TestGuestbook:
    """End-to-end requests against create_app()."""

    def test_api_scenario(self, running_app):
        """Post one message, then list two."""
        status, headers, body = running_app.post_json("/api/messages", {"author": "alice", "content": "hi"})

        assert status == 201
        assert headers["Content-Type"] == "application/json"
        assert json.loads(body)["id"] == 2

        status, _, body = running_app.request("GET", "/api/messages")
        items = json.loads(body)
        assert status == 200
        assert [m["id"] for m in items] == [2, 1]

    def test_bad_json(self, running_app, store):
        status, headers, body = running_app.post_json("/api/messages", b"not json")

        assert status == 400
        assert body == b"Bad JSON\n"
        assert headers["X-Content-Type-Options"] == "nosniff"
        assert len(store) == 1

    def test_null_body(self, running_app, store):
        status, _, body = running_app.post_json("/api/messages", b"null")

        assert status == 400
        assert body == b"content required\n"
        assert len(store) == 1

    def test_body_after_first_value_ignored(self, running_app, store):
        status, _, body = running_app.post_json("/api/messages", b'{"content":"hi"}\n{"x":1}')

        assert status == 201
        assert json.loads(body)["content"] == "hi"
        assert len(store) == 2

    def test_form_submit_redirects(self, running_app, store):
        status, headers, _ = running_app.request(
            "POST", "/submit", b"author=bob&content=hello",
            {"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert status == 303
        assert headers["Location"] == "/"
        assert store.snapshot()[0].content == "hello"

    def test_empty_form_submit(self, running_app, store):
        status, _, _ = running_app.request(
            "POST", "/submit", b"content=",
            {"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert status == 303
        assert len(store) == 1

    def test_home_page(self, running_app):
        status, headers, body = running_app.request("GET", "/")

        assert status == 200
        assert headers["Content-Type"] == "text/html; charset=utf-8"
        assert b"Welcome to the guestbook!" in body

    @pytest.mark.parametrize("path", ["/unknown", "/about/", "/api/messages/"])
    def test_unknown_path(self, running_app, path):
        status, _, body = running_app.request("GET", path)

        assert status == 404
        assert body == b"404 page not found\n"

    def test_delete_not_allowed(self, running_app):
        status, headers, body = running_app.request("DELETE", "/api/messages")

        assert status == 405
        assert "GET" in headers["Allow"]
        assert body == b"Method not allowed\n"

    def test_static_stylesheet(self, running_app):
        status, headers, body = running_app.request("GET", "/static/style.css")

        assert status == 200
        assert headers["Content-Type"].startswith("text/css")
        assert len(body) > 0

    def test_head_has_no_body(self, running_app):
        conn = running_app.connect()
        try:
            conn.request("HEAD", "/about")
            response = conn.getresponse()
            body = response.read()
        finally:
            conn.close()

        assert response.status == 200
        assert int(response.getheader("Content-Length")) > 0
        assert body == b""

    def test_keep_alive_reuses_connection(self, running_app):
        conn = running_app.connect()
        try:
            for _ in range(3):
                conn.request("GET", "/api/messages")
                response = conn.getresponse()
                response.read()
                assert response.status == 200
                assert response.getheader("Connection") != "close"
            sock = conn.sock
            conn.request("GET", "/about")
            conn.getresponse().read()
            assert conn.sock is sock
        finally:
            conn.close()

    def test_access_log(self, running_app, caplog):
        with caplog.at_level(logging.INFO, logger="guestbook.access"):
            running_app.request("GET", "/about")
            running_app.request("GET", "/static/style.css")

        lines = [r.getMessage() for r in caplog.records if r.name == "guestbook.access"]
        assert len(lines) == 1
        assert lines[0].startswith("GET /about 200 ")


class TestProtocolErrors:
    """Errors raised before any handler runs."""

    def raw(self, running_app, data: bytes) -> bytes:
        with socket.create_connection((running_app.host, running_app.port), timeout=5.0) as sock:
            sock.sendall(data)
            return recv_all(sock)

    def test_malformed_request_line(self, running_app):
        response = self.raw(running_app, b"NONSENSE\r\n\r\n")

        assert response.startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert b"Connection: close\r\n" in response

    def test_unsupported_version(self, running_app):
        response = self.raw(running_app, b"GET / HTTP/3.0\r\n\r\n")

        assert response.startswith(b"HTTP/1.1 505 ")

    def test_dot_dot_path(self, running_app):
        response = self.raw(running_app, b"GET /static/../secret HTTP/1.1\r\n\r\n")

        assert response.startswith(b"HTTP/1.1 400 ")

    def test_http10_closes_by_default(self, running_app):
        response = self.raw(running_app, b"GET /api/messages HTTP/1.0\r\n\r\n")

        assert response.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Connection: close\r\n" in response


@pytest.fixture
def slow_server(config, serve):
    """
    A bare HTTPServer with one handler that blocks until released.

    Yields (running, entered, release).
    """
    entered = threading.Event()
    release = threading.Event()
    server = HTTPServer(config)

    @server.get("/slow")
    def slow(request):
        entered.set()
        release.wait(10.0)
        return ResponseBuilder().text("done").build()

    running = serve(server)
    yield running, entered, release
    release.set()


class TestGracefulShutdown:
    """The drain that follows the stop token."""

    def test_stop_and_state(self, slow_server):
        running, _, _ = slow_server

        assert running.server.state == ServerState.SERVING
        running.server.shutdown()

        assert running.server.wait_until_stopped(timeout=10.0)
        assert running.server.state == ServerState.STOPPED
        assert running.server.drain_timed_out is False

    def test_in_flight_request_finishes(self, slow_server):
        """A request in progress completes with Connection: close."""
        running, entered, release = slow_server
        result = {}

        def client():
            result["response"] = running.request("GET", "/slow")

        t = threading.Thread(target=client)
        t.start()
        assert entered.wait(5.0)

        running.stop_event.set()
        time.sleep(0.2)
        release.set()
        t.join(timeout=10.0)

        status, headers, body = result["response"]
        assert status == 200
        assert body == b"done"
        assert headers["Connection"] == "close"
        assert running.server.wait_until_stopped(timeout=10.0)
        assert running.server.drain_timed_out is False

    def test_queued_request_served(self, config, serve):
        """A request waiting for the only worker is answered, not cut."""
        config.min_workers = config.max_workers = 1
        entered = threading.Event()
        release = threading.Event()
        server = HTTPServer(config)

        @server.get("/slow")
        def slow(request):
            entered.set()
            release.wait(10.0)
            return ResponseBuilder().text("done").build()

        @server.get("/fast")
        def fast(request):
            return ResponseBuilder().text("fast").build()

        running = serve(server)
        busy = socket.create_connection((running.host, running.port), timeout=5.0)
        queued = socket.create_connection((running.host, running.port), timeout=5.0)
        try:
            busy.sendall(b"GET /slow HTTP/1.1\r\n\r\n")
            assert entered.wait(5.0)
            queued.sendall(b"GET /fast HTTP/1.1\r\n\r\n")
            time.sleep(0.2)

            server.shutdown()
            time.sleep(0.3)
            release.set()

            first = recv_all(busy)
            second = recv_all(queued)
            assert server.wait_until_stopped(timeout=10.0)
        finally:
            release.set()
            busy.close()
            queued.close()

        assert first.startswith(b"HTTP/1.1 200 ") and first.endswith(b"done")
        assert second.startswith(b"HTTP/1.1 200 ") and second.endswith(b"fast")
        assert b"Connection: close" in second
        assert server.drain_timed_out is False

    def test_idle_keep_alive_closed(self, slow_server):
        running, _, _ = slow_server
        sock = socket.create_connection((running.host, running.port), timeout=5.0)
        try:
            sock.sendall(b"GET /nothing HTTP/1.1\r\n\r\n")
            first = sock.recv(65536)
            assert first.startswith(b"HTTP/1.1 404 ")

            running.server.shutdown()

            assert running.server.wait_until_stopped(timeout=10.0)
            assert recv_all(sock) == b""
        finally:
            sock.close()
        assert running.server.drain_timed_out is False

    def test_drain_timeout_cuts_connection(self, config, serve):
        config.shutdown_timeout = 0.3
        entered = threading.Event()
        release = threading.Event()
        server = HTTPServer(config)

        @server.get("/stuck")
        def stuck(request):
            entered.set()
            release.wait(10.0)
            return ResponseBuilder().text("late").build()

        running = serve(server)
        sock = socket.create_connection((running.host, running.port), timeout=5.0)
        try:
            sock.sendall(b"GET /stuck HTTP/1.1\r\n\r\n")
            assert entered.wait(5.0)

            server.shutdown()
            assert server.wait_until_stopped(timeout=10.0)

            assert server.drain_timed_out is True
            assert recv_all(sock) == b""
        finally:
            release.set()
            sock.close()

    def test_listener_closed_after_stop(self, slow_server):
        running, _, _ = slow_server
        host, port = running.host, running.port

        running.stop()

        with pytest.raises(OSError):
            socket.create_connection((host, port), timeout=1.0).close()
