"""Session test fixtures -- parameterized for conformance testing.

FTP runs against an in-process pyftpdlib server, SFTP against the paramiko
stub server in :mod:`tests.sessions.sftp_server`.
"""

from __future__ import annotations

import dataclasses
import threading
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from pyftpdlib.authorizers import DummyAuthorizer
from pyftpdlib.handlers import FTPHandler
from pyftpdlib.servers import FTPServer

from tests.sessions.sftp_server import SFTPTestServer
from universal_storage.sessions import FTPSession, HostKeyPolicy, LocalSession, SFTPSession

if TYPE_CHECKING:
    from collections.abc import Iterator

    from universal_storage._session import RemoteSession

FTP_USER = "tester"
FTP_PASSWORD = "secret"


@dataclasses.dataclass(frozen=True)
class ServerInfo:
    host: str
    port: int
    root: Path
    known_hosts: str = ""


@dataclasses.dataclass(frozen=True)
class Workspace:
    """A connected session plus a fresh directory it can play in.

    ``remote`` is the absolute server path of the directory and ``local``
    the same directory on disk.
    """

    session: RemoteSession
    remote: str
    local: Path


@pytest.fixture(scope="session")
def ftp_server(tmp_path_factory: pytest.TempPathFactory) -> Iterator[ServerInfo]:
    """Start a pyftpdlib server for the test session."""
    root = tmp_path_factory.mktemp("ftp_root")

    authorizer = DummyAuthorizer()
    authorizer.add_user(FTP_USER, FTP_PASSWORD, str(root), perm="elradfmwMT")

    class _Handler(FTPHandler):
        pass

    _Handler.authorizer = authorizer
    server = FTPServer(("127.0.0.1", 0), _Handler)
    port = server.socket.getsockname()[1]
    thread = threading.Thread(target=server.serve_forever, kwargs={"timeout": 0.5}, daemon=True)
    thread.start()

    yield ServerInfo(host="127.0.0.1", port=port, root=root)

    server.close_all()
    thread.join(timeout=5)


@pytest.fixture(scope="session")
def sftp_server(tmp_path_factory: pytest.TempPathFactory) -> Iterator[ServerInfo]:
    """Start the in-process SFTP server for the test session."""
    root = tmp_path_factory.mktemp("sftp_root")
    server = SFTPTestServer(str(root))
    server.start()
    yield ServerInfo(host=server.host, port=server.port, root=root, known_hosts=server.known_hosts_entry)
    server.stop()


def connect_ftp(info: ServerInfo) -> FTPSession:
    session = FTPSession(timeout=10, connect_attempts=1)
    session.connect(info.host, info.port)
    session.authenticate(FTP_USER, FTP_PASSWORD)
    session.set_passive_mode(True)
    session.set_binary_mode()
    return session


def connect_sftp(info: ServerInfo) -> SFTPSession:
    session = SFTPSession(
        host_key_policy=HostKeyPolicy.STRICT,
        known_host_keys=info.known_hosts,
        connect_attempts=1,
        connect_kwargs={"allow_agent": False, "look_for_keys": False},
    )
    session.connect(info.host, info.port)
    session.authenticate("tester", "secret")
    return session


@pytest.fixture(params=["local", "ftp", "sftp"])
def workspace(
    request: pytest.FixtureRequest,
    tmp_path: Path,
) -> Iterator[Workspace]:
    """Parameterized session fixture. Add new sessions here."""
    name = f"ws_{uuid.uuid4().hex[:8]}"
    if request.param == "local":
        root = tmp_path / "local_root"
        session: RemoteSession = LocalSession(str(root))
        session.connect("localhost")
        session.authenticate(None, None)
    elif request.param == "ftp":
        info: ServerInfo = request.getfixturevalue("ftp_server")
        root = info.root
        session = connect_ftp(info)
    else:
        info = request.getfixturevalue("sftp_server")
        root = info.root
        session = connect_sftp(info)

    local = root / name
    local.mkdir()
    yield Workspace(session=session, remote=f"/{name}", local=local)
    session.disconnect()
