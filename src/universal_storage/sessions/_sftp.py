"""SFTP session using pure paramiko."""

from __future__ import annotations

import contextlib
import logging
import os
import stat
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, BinaryIO, Optional, Union

from universal_storage._errors import RemoteIOError
from universal_storage._models import RemoteEntry
from universal_storage._session import RemoteSession

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)


# region: host key policy


class HostKeyPolicy(Enum):
    """What to do when the server presents a key that is not known yet."""

    STRICT = "strict"  # refuse the connection
    TRUST_ON_FIRST_USE = "tofu"  # accept; remembered in host_keys_path when one was loaded
    AUTO_ADD = "auto"  # accept, and load no known keys at all


def _known_host_entries(text: str) -> Iterator[Any]:
    """Yield a paramiko ``HostKeyEntry`` per known_hosts line in ``text``."""
    from paramiko.hostkeys import HostKeyEntry

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        entry = HostKeyEntry.from_line(line)
        if entry is not None:
            yield entry


# endregion


class SFTPSession(RemoteSession):
    """SFTP session using pure paramiko.

    paramiko tracks the working directory client-side, so the session state
    behaves exactly like an FTP connection. Passive and binary modes do not
    apply to SFTP and are accepted as no-ops.

    :param host_key_policy: Host key verification policy (enum or its value).
    :param known_host_keys: known_hosts lines to trust. When given,
        ``host_keys_path`` is not read.
    :param host_keys_path: known_hosts file, ``~/.ssh/known_hosts`` by default.
    :param key_filename: Private key file for key-based auth.
    :param timeout: SSH connection timeout in seconds.
    :param connect_attempts: How many times to try establishing the connection.
    :param connect_kwargs: Extra kwargs passed to ``SSHClient.connect()``.
    """

    default_port = 22

    def __init__(
        self,
        *,
        host_key_policy: Union[HostKeyPolicy, str] = HostKeyPolicy.STRICT,
        known_host_keys: Optional[str] = None,
        host_keys_path: Optional[str] = None,
        key_filename: Optional[str] = None,
        timeout: int = 10,
        connect_attempts: int = 3,
        connect_kwargs: Optional[dict[str, Any]] = None,
    ) -> None:
        self._host_key_policy = HostKeyPolicy(host_key_policy)
        self._known_host_keys = known_host_keys
        self._host_keys_path = host_keys_path
        self._key_filename = key_filename
        self._timeout = timeout
        self._connect_attempts = max(1, connect_attempts)
        self._connect_kwargs = connect_kwargs or {}

        self._host: Optional[str] = None
        self._port = self.default_port
        self._ssh_client: Any = None
        self._sftp_client: Any = None

    @property
    def scheme(self) -> str:
        return "sftp"

    @property
    def connected(self) -> bool:
        return self._sftp_client is not None

    @property
    def _sftp(self) -> Any:
        if self._sftp_client is None:
            raise RemoteIOError("Session is not connected", session=self.scheme)
        return self._sftp_client

    # region: lifecycle

    def connect(self, host: str, port: Optional[int] = None) -> None:
        """Record the endpoint and prepare the SSH client.

        The SSH handshake needs credentials, so the network connection is
        made by :meth:`authenticate`.
        """
        if not host or not host.strip():
            raise RemoteIOError("host must be a non-empty string", session=self.scheme)
        self.disconnect()
        self._host = host
        self._port = port or self.default_port
        self._ssh_client = self._create_ssh_client()

    def authenticate(self, user: Optional[str], password: Optional[str]) -> None:
        """Establish SSH + SFTP connection with tenacity retry."""
        import paramiko
        from tenacity import (
            before_sleep_log,
            retry,
            retry_if_exception_type,
            stop_after_attempt,
            wait_exponential,
        )

        if self._ssh_client is None:
            raise RemoteIOError("connect() must be called before authenticate()", session=self.scheme)
        ssh = self._ssh_client

        @retry(
            retry=retry_if_exception_type((paramiko.SSHException, OSError, EOFError)),
            stop=stop_after_attempt(self._connect_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            before_sleep=before_sleep_log(log, logging.WARNING),  # type: ignore[arg-type,unused-ignore]
            reraise=True,
        )
        def _do_connect() -> None:
            log.info("Connecting to %s:%d as %s", self._host, self._port, user)
            ssh.connect(
                hostname=self._host,
                port=self._port,
                username=user,
                password=password,
                key_filename=self._key_filename,
                timeout=self._timeout,
                banner_timeout=self._timeout,
                auth_timeout=self._timeout,
                channel_timeout=self._timeout,
                **self._connect_kwargs,
            )

        with self._errors(f"{self._host}:{self._port}"):
            _do_connect()
            self._sftp_client = ssh.open_sftp()
        log.info("SFTP connection established.")

    def _create_ssh_client(self) -> Any:
        import paramiko

        ssh = paramiko.SSHClient()
        policy = self._host_key_policy
        if self._known_host_keys:
            keys = ssh.get_host_keys()
            for entry in _known_host_entries(self._known_host_keys):
                for name in entry.hostnames:
                    keys.add(name, entry.key.get_name(), entry.key)
        elif policy is not HostKeyPolicy.AUTO_ADD:
            keys_path = os.path.expanduser(self._host_keys_path or "~/.ssh/known_hosts")
            if os.path.isfile(keys_path):
                ssh.load_host_keys(keys_path)

        if policy is HostKeyPolicy.STRICT:
            ssh.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            if policy is HostKeyPolicy.AUTO_ADD:
                log.warning("Host keys for %s will not be verified", self._host)
            ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        return ssh

    def set_passive_mode(self, passive: bool) -> None:
        log.debug("Passive mode does not apply to SFTP; ignoring %s", passive)

    def set_binary_mode(self) -> None:
        pass

    def disconnect(self) -> None:
        """Close SFTP and SSH clients if open."""
        if self._sftp_client is not None:
            with contextlib.suppress(Exception):
                self._sftp_client.close()
            self._sftp_client = None
        if self._ssh_client is not None:
            with contextlib.suppress(Exception):
                self._ssh_client.close()
            self._ssh_client = None

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str = "") -> Iterator[None]:
        """Map paramiko/OS exceptions to RemoteIOError."""
        import paramiko

        try:
            yield
        except RemoteIOError:
            raise
        except (OSError, EOFError, paramiko.SSHException, paramiko.SFTPError) as exc:
            raise RemoteIOError(str(exc) or type(exc).__name__, path=path or None, session=self.scheme) from None

    # endregion

    # region: directory primitives

    def change_working_directory(self, path: str) -> bool:
        import paramiko

        with self._errors(path):
            try:
                self._sftp.chdir(path)
            except (OSError, paramiko.SFTPError):
                return False
            return True

    def make_directory(self, name: str) -> None:
        with self._errors(name):
            self._sftp.mkdir(name)
        log.debug("Created directory %s", name)

    def remove_directory(self, path: str) -> None:
        with self._errors(path):
            self._sftp.rmdir(path)
        log.debug("Removed directory %s", path)

    def delete_file(self, path: str) -> bool:
        with self._errors(path):
            try:
                self._sftp.remove(path)
            except OSError as exc:
                log.debug("remove %s refused: %s", path, exc)
                return False
            return True

    def list_entries(self, path: str) -> list[RemoteEntry]:
        with self._errors(path):
            return [
                RemoteEntry(name=attr.filename, is_directory=stat.S_ISDIR(attr.st_mode or 0))
                for attr in self._sftp.listdir_attr(path)
            ]

    # endregion

    # region: streams

    def open_upload_stream(self, name: str) -> BinaryIO:
        with self._errors(name):
            return self._sftp.open(name, "wb")  # type: ignore[no-any-return]

    def open_download_stream(self, path: str) -> BinaryIO:
        with self._errors(path):
            f = self._sftp.open(path, "rb")
            f.prefetch()
            return f  # type: ignore[no-any-return]

    # endregion
