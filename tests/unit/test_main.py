"""
Unit tests for the CLI entry point and its exit codes.
"""

import socket
import threading
import time

import pytest

from staticserve.__main__ import main, build_parser, build_config
from staticserve.core import socket_server
from staticserve.core.thread_pool import ThreadPool
from staticserve.errors import (
    USAGE_ERROR,
    SOCK_ERROR,
    BIND_ERROR,
    LISTEN_ERROR,
)


class UnlistenableSocket:
    """A listening socket whose listen() always fails."""

    def __init__(self, *args, **kwargs):
        self.closed = False

    def setsockopt(self, *args):
        pass

    def settimeout(self, value):
        pass

    def bind(self, address):
        pass

    def listen(self, backlog):
        raise OSError("listen refused")

    def close(self):
        self.closed = True


class TestUsageErrors:
    """Bad invocations exit with 1."""

    @pytest.mark.parametrize("argv", [
        [],
        ["eighty"],
        ["8080", "8081"],
        ["8080", "--workers", "many"],
        ["8080", "--log-level", "LOUD"],
    ])
    def test_bad_arguments(self, argv, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(argv)

        assert exc_info.value.code == USAGE_ERROR
        assert "usage:" in capsys.readouterr().err

    def test_missing_root_dir(self, tmp_path, capsys):
        code = main(["8080", "--root", str(tmp_path / "missing")])

        assert code == USAGE_ERROR
        assert "Root directory does not exist" in capsys.readouterr().err

    def test_parser_defaults_leave_config_alone(self):
        args = build_parser().parse_args(["8080"])

        assert args.port == 8080
        assert args.host is None
        assert args.workers is None


class TestStartupErrors:
    """socket / bind / listen failures exit with 2 / 3 / 4."""

    def test_port_in_use(self, site_root, free_port):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupant:
            occupant.bind(("127.0.0.1", free_port))
            occupant.listen(1)

            code = main([
                str(free_port), "--host", "127.0.0.1", "--root", str(site_root),
            ])

        assert code == BIND_ERROR

    def test_port_out_of_range(self, site_root):
        code = main(["70000", "--host", "127.0.0.1", "--root", str(site_root)])

        assert code == BIND_ERROR

    def test_socket_creation_failure(self, site_root, monkeypatch):
        def refuse(*args, **kwargs):
            raise OSError("no sockets for you")

        monkeypatch.setattr(socket_server.socket, "socket", refuse)

        code = main(["8080", "--root", str(site_root)])

        assert code == SOCK_ERROR

    def test_listen_failure(self, site_root, monkeypatch):
        monkeypatch.setattr(socket_server.socket, "socket", UnlistenableSocket)

        code = main(["8080", "--root", str(site_root)])

        assert code == LISTEN_ERROR


class TestWorkerFlags:
    """--workers / --max-workers map onto the pool bounds."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        monkeypatch.delenv("STATICSERVE_WORKERS", raising=False)

    def config_for(self, *flags):
        return build_config(build_parser().parse_args(["8080", *flags]))

    def test_single_worker_is_serial(self):
        config = self.config_for("--workers", "1")

        assert config.min_workers == 1
        assert config.max_workers == 1

    def test_single_worker_pool_never_overlaps(self):
        config = self.config_for("--workers", "1")
        pool = ThreadPool(
            min_workers=config.min_workers,
            max_workers=config.max_workers,
            queue_size=10,
        )
        lock = threading.Lock()
        active = [0]
        peak = [0]

        def task():
            with lock:
                active[0] += 1
                peak[0] = max(peak[0], active[0])
            time.sleep(0.05)
            with lock:
                active[0] -= 1

        pool.start()
        try:
            for _ in range(3):
                pool.submit(task)
            assert pool.worker_count == 1
        finally:
            pool.shutdown(wait=True, timeout=5.0)

        assert peak[0] == 1

    def test_max_workers_lets_pool_grow(self):
        config = self.config_for("--workers", "2", "--max-workers", "8")

        assert (config.min_workers, config.max_workers) == (2, 8)

    def test_defaults_without_flags(self):
        config = self.config_for()

        assert (config.min_workers, config.max_workers) == (4, 16)
