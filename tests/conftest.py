"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest

from tests.utils.http import reserve_port, wait_for_port

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"

INDEX_TEMPLATE = "<html><body><h1>peer-server index</h1></body></html>\n"
SAMPLE_DATA = b'{\n   "greeting": "hello",\n   "count": 3\n}\n'


def _populate_content(directory: Path) -> None:
    (directory / "main.html").write_text(INDEX_TEMPLATE, encoding="utf-8")
    (directory / "sampleData.json").write_bytes(SAMPLE_DATA)
    (directory / "notes.txt").write_text("plain notes\n", encoding="utf-8")


def _launch_server(
    host: str,
    port: int,
    directory: Path,
    extra_args: list[str] | None = None,
) -> Generator[ServerProcessInfo, None, None]:
    log_file = directory / "peer_server.log"
    error_log_file = directory / "peer_server_error.log"
    args = [
        sys.executable,
        str(SERVER_ENTRYPOINT),
        "--directory",
        str(directory),
        "--host",
        host,
        "--port",
        str(port),
        "--log-destination",
        str(log_file),
        "--error-log-destination",
        str(error_log_file),
    ]
    if extra_args:
        args.extend(extra_args)

    with subprocess.Popen(
        args,
        cwd=PROJECT_ROOT,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    ) as process:
        try:
            wait_for_port(host, port)
        except Exception:
            # If startup failed, print stdout/stderr to help debug
            process.terminate()
            stdout, stderr = process.communicate(timeout=5)
            print(f"\nServer stdout:\n{stdout}")
            print(f"\nServer stderr:\n{stderr}")
            raise

        yield {
            "base_url": f"http://{host}:{port}",
            "host": host,
            "port": port,
            "directory": directory,
            "process": process,
            "log_file": log_file,
            "error_log_file": error_log_file,
        }

        process.terminate()
        try:
            process.wait(timeout=10)
        except subprocess.TimeoutExpired:
            process.kill()


class ServerProcessInfo(TypedDict):
    """Metadata describing a running server fixture instance."""

    base_url: str
    host: str
    port: int
    directory: Path
    process: subprocess.Popen[str]
    log_file: Path
    error_log_file: Path


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""

    return PROJECT_ROOT


@pytest.fixture(name="content_directory")
def _content_directory(tmp_path_factory: "TempPathFactory") -> Path:
    """A content directory holding the index template and sample files."""

    directory = tmp_path_factory.mktemp("server-content")
    _populate_content(directory)
    return directory


@pytest.fixture(name="server_process")
def _server_process(
    content_directory: Path,
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the peer server in a background process for integration tests."""

    host = "127.0.0.1"
    port = reserve_port(host)
    yield from _launch_server(
        host, port, content_directory, ["--shutdown-grace-seconds", "2"]
    )


@pytest.fixture(name="verbose_server_process")
def _verbose_server_process(
    content_directory: Path,
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the peer server with request dumps enabled."""

    host = "127.0.0.1"
    port = reserve_port(host)
    yield from _launch_server(
        host,
        port,
        content_directory,
        ["--verbose", "--shutdown-grace-seconds", "2"],
    )


@pytest.fixture()
def base_url(server_process: ServerProcessInfo) -> str:
    """Expose the running server base URL to integration tests."""

    return server_process["base_url"]
