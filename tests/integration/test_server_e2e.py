"""
End-to-end tests over real TCP sockets.
"""

import socket
import threading

import pytest

from staticserve import StaticFileServer
from staticserve.errors import BindError
from staticserve.http.response import NOT_FOUND_BODY


HEADER_200 = b"HTTP/1.1 200 OK\nContent-Type: text/html\r\n\r\n"


class TestServing:

    def test_get_existing_file(self, running_server, site_root, fetch):
        response = fetch(running_server.port, b"GET /index.html HTTP/1.1\n")

        assert response == HEADER_200 + (site_root / "index.html").read_bytes()

    def test_get_nested_binary_and_traversal_prefix(self, running_server, site_root, fetch):
        response = fetch(running_server.port, b"GET ../../blob.bin HTTP/1.0\n")

        assert response.startswith(b"HTTP/1.0 200 OK\n")
        assert response.endswith((site_root / "blob.bin").read_bytes())

    def test_not_found(self, running_server, fetch):
        response = fetch(running_server.port, b"GET /missing.html HTTP/1.1\n")

        assert response == b"HTTP/1.1 404 NOT FOUND\r\n\r\n" + NOT_FOUND_BODY

    def test_escape_attempt_is_not_found(self, running_server, fetch):
        response = fetch(running_server.port, b"GET /docs/../../secret.txt HTTP/1.1\n")

        assert b"top secret" not in response
        assert response == b"HTTP/1.1 404 NOT FOUND\r\n\r\n" + NOT_FOUND_BODY

    def test_unsupported_method_gets_nothing(self, running_server, fetch):
        response = fetch(running_server.port, b"POST /x HTTP/1.1\n")

        assert response == b""

    def test_browser_style_request(self, running_server, site_root, fetch):
        """Headers after the request line are drained, not fatal."""
        raw = (
            b"GET /foo/bar.html HTTP/1.1\r\n"
            b"Host: localhost\r\n"
            b"User-Agent: pytest\r\n"
            b"Accept: */*\r\n"
            b"\r\n"
        )

        response = fetch(running_server.port, raw, half_close=False)

        assert response == HEADER_200 + (site_root / "foo" / "bar.html").read_bytes()

    def test_request_sent_in_pieces(self, running_server, site_root):
        with socket.create_connection(("127.0.0.1", running_server.port), timeout=5.0) as s:
            for piece in (b"GET /ind", b"ex.h", b"tml HTT", b"P/1.1\n"):
                s.sendall(piece)

            received = b""
            while True:
                data = s.recv(4096)
                if not data:
                    break
                received += data

        assert received == HEADER_200 + (site_root / "index.html").read_bytes()

    def test_many_sequential_clients(self, running_server, fetch):
        for _ in range(10):
            assert fetch(running_server.port, b"GET /index.html HTTP/1.1\n").startswith(
                b"HTTP/1.1 200 OK\n"
            )


class TestConcurrency:

    def test_idle_client_does_not_block_others(self, running_server, fetch):
        """A client that connects and says nothing holds one worker only."""
        idle = socket.create_connection(("127.0.0.1", running_server.port), timeout=5.0)
        try:
            response = fetch(running_server.port, b"GET /index.html HTTP/1.1\n", timeout=3.0)
            assert response.startswith(b"HTTP/1.1 200 OK\n")
        finally:
            idle.close()

    def test_parallel_clients(self, running_server, site_root, fetch):
        expected = HEADER_200 + (site_root / "blob.bin").read_bytes()
        results = []
        lock = threading.Lock()

        def client():
            response = fetch(running_server.port, b"GET /blob.bin HTTP/1.1\n")
            with lock:
                results.append(response)

        threads = [threading.Thread(target=client) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert len(results) == 8
        assert all(r == expected for r in results)


class TestStartup:

    def test_port_in_use_never_accepts(self, config, free_port):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupant:
            occupant.bind(("127.0.0.1", free_port))
            occupant.listen(1)

            config.port = free_port
            server = StaticFileServer(config)

            with pytest.raises(BindError) as exc_info:
                server.run()

        assert exc_info.value.exit_code == 3
        assert not server.is_running
        assert not server.wait_until_listening(timeout=0.1)

    def test_reports_bound_port(self, running_server):
        assert running_server.port != 0
        assert running_server.server.is_running

    def test_shutdown_stops_accepting(self, running_server):
        port = running_server.port

        running_server.stop()

        assert not running_server.server.is_running
        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1.0).close()
