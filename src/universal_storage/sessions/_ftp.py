"""FTP session using the standard library's ftplib."""

from __future__ import annotations

import ftplib
import io
import logging
import re
import ssl
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, BinaryIO, Optional

from universal_storage._errors import RemoteIOError
from universal_storage._models import RemoteEntry
from universal_storage._session import RemoteSession

if TYPE_CHECKING:
    import socket
    from collections.abc import Iterator

log = logging.getLogger(__name__)

# Replies that mean "command not implemented" rather than "no such path"
_NOT_IMPLEMENTED = ("500", "502", "504")
_ABORT_REPLIES = ("426", "450", "451")

_UNIX_LIST = re.compile(
    r"^([\-ld])[rwxsStT\-]{9}\S*\s+\d+\s+\S+\s+\S+\s+\d+\s+"
    r"\w{3}\s+\d{1,2}\s+(?:\d{1,2}:\d{2}|\d{4})\s+(.+)$"
)
_WINDOWS_LIST = re.compile(r"^\d{2}-\d{2}-\d{2,4}\s+\d{1,2}:\d{2}[AP]M\s+(<DIR>|\d+)\s+(.+)$")


def parse_list_line(line: str) -> Optional[RemoteEntry]:
    """Parse one line of ``LIST`` output in Unix or Windows format.

    Returns ``None`` for lines that are not entries (``total 12``, ``.``, ``..``).
    """
    line = line.rstrip("\r\n")
    match = _UNIX_LIST.match(line)
    if match:
        kind, name = match.groups()
        if kind == "l" and " -> " in name:
            name = name.split(" -> ", 1)[0]
        entry = RemoteEntry(name=name, is_directory=kind == "d")
    else:
        match = _WINDOWS_LIST.match(line)
        if not match:
            return None
        size_or_dir, name = match.groups()
        entry = RemoteEntry(name=name, is_directory=size_or_dir == "<DIR>")
    if entry.name in (".", ".."):
        return None
    return entry


class _DataChannel(io.RawIOBase):
    """One FTP data connection exposed as a raw binary stream.

    Closing the stream closes the data socket and reads the server's final
    transfer reply on the control connection.

    A download closed before the end of the file is an abort, so a 426,
    450 or 451 reply is expected then and not reported as a failure.
    """

    def __init__(self, ftp: ftplib.FTP, conn: socket.socket, *, writable: bool, path: str, scheme: str) -> None:
        self._ftp = ftp
        self._conn = conn
        self._writable = writable
        self._path = path
        self._scheme = scheme
        self._eof = False

    def readable(self) -> bool:
        return not self._writable

    def writable(self) -> bool:
        return self._writable

    def readinto(self, buffer: Any) -> int:
        try:
            n = self._conn.recv_into(buffer)
        except OSError as exc:
            raise RemoteIOError(str(exc), path=self._path, session=self._scheme) from None
        if n == 0:
            self._eof = True
        return n

    def write(self, data: Any) -> int:
        try:
            self._conn.sendall(data)
        except OSError as exc:
            raise RemoteIOError(str(exc), path=self._path, session=self._scheme) from None
        return len(data)

    def close(self) -> None:
        if self.closed:
            return
        try:
            if isinstance(self._conn, ssl.SSLSocket):
                self._conn.unwrap()
            self._conn.close()
            self._ftp.voidresp()
        except (ftplib.error_temp, ftplib.error_perm) as exc:
            if self._writable or self._eof or not str(exc).startswith(_ABORT_REPLIES):
                raise RemoteIOError(f"Transfer failed: {exc}", path=self._path, session=self._scheme) from None
            log.debug("Download of %s closed early: %s", self._path, exc)
        except ftplib.all_errors as exc:
            raise RemoteIOError(f"Transfer failed: {exc}", path=self._path, session=self._scheme) from None
        finally:
            super().close()


class FTPSession(RemoteSession):
    """FTP session using ftplib.

    :param timeout: Socket timeout in seconds.
    :param encoding: Encoding for path names on the control connection.
    :param tls: Use explicit FTPS (``AUTH TLS`` with a protected data channel).
    :param connect_attempts: How many times to try establishing the connection.
    """

    default_port = 21

    def __init__(
        self,
        *,
        timeout: float = 30,
        encoding: str = "utf-8",
        tls: bool = False,
        connect_attempts: int = 3,
    ) -> None:
        self._timeout = timeout
        self._encoding = encoding
        self._tls = tls
        self._connect_attempts = max(1, connect_attempts)
        self._ftp_client: Optional[ftplib.FTP] = None
        self._logged_in = False
        self._supports_mlsd = False

    @property
    def scheme(self) -> str:
        return "ftps" if self._tls else "ftp"

    @property
    def connected(self) -> bool:
        return self._ftp_client is not None and self._logged_in

    @property
    def _ftp(self) -> ftplib.FTP:
        if self._ftp_client is None:
            raise RemoteIOError("Session is not connected", session=self.scheme)
        return self._ftp_client

    @contextmanager
    def _errors(self, path: str = "") -> Iterator[None]:
        """Map ftplib and socket exceptions to RemoteIOError."""
        try:
            yield
        except RemoteIOError:
            raise
        except ftplib.all_errors as exc:
            raise RemoteIOError(f"{exc}", path=path or None, session=self.scheme) from None

    # region: lifecycle
    def connect(self, host: str, port: Optional[int] = None) -> None:
        """Open the control connection with tenacity retry."""
        from tenacity import (
            before_sleep_log,
            retry,
            retry_if_exception_type,
            stop_after_attempt,
            wait_exponential,
        )

        self.disconnect()
        port = port or self.default_port
        ftp = ftplib.FTP_TLS() if self._tls else ftplib.FTP()
        ftp.encoding = self._encoding

        @retry(
            retry=retry_if_exception_type((OSError, EOFError, ftplib.error_temp)),
            stop=stop_after_attempt(self._connect_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            before_sleep=before_sleep_log(log, logging.WARNING),  # type: ignore[arg-type,unused-ignore]
            reraise=True,
        )
        def _do_connect() -> None:
            log.info("Connecting to %s:%d", host, port)
            ftp.connect(host=host, port=port, timeout=self._timeout)

        with self._errors(f"{host}:{port}"):
            _do_connect()
        self._ftp_client = ftp

    def authenticate(self, user: Optional[str], password: Optional[str]) -> None:
        with self._errors():
            if user:
                log.debug("Logging in as user: %s", user)
                self._ftp.login(user=user, passwd=password or "")
            else:
                log.debug("Logging in anonymously")
                self._ftp.login()
            if isinstance(self._ftp, ftplib.FTP_TLS):
                self._ftp.prot_p()
        self._logged_in = True
        self._detect_features()
        log.info("FTP session established.")

    def _detect_features(self) -> None:
        """Use MLSD for listings when the server advertises MLST (RFC 3659)."""
        try:
            features = self._ftp.sendcmd("FEAT").upper()
        except ftplib.error_perm:
            features = ""
        except ftplib.all_errors as exc:
            raise RemoteIOError(f"FEAT failed: {exc}", session=self.scheme) from None
        self._supports_mlsd = "MLST" in features or "MLSD" in features
        log.debug("Server listing command: %s", "MLSD" if self._supports_mlsd else "LIST")

    def set_passive_mode(self, passive: bool) -> None:
        self._ftp.set_pasv(passive)
        log.debug("Passive mode: %s", passive)

    def set_binary_mode(self) -> None:
        with self._errors():
            self._ftp.voidcmd("TYPE I")

    def disconnect(self) -> None:
        ftp, self._ftp_client = self._ftp_client, None
        self._logged_in = False
        if ftp is None:
            return
        try:
            ftp.quit()
            log.debug("FTP connection closed gracefully")
        except ftplib.all_errors as exc:
            log.debug("FTP quit failed, forcing close: %s", exc)
            ftp.close()

    # endregion

    # region: directory primitives
    def change_working_directory(self, path: str) -> bool:
        with self._errors(path):
            try:
                self._ftp.cwd(path)
            except ftplib.error_perm:
                return False
            return True

    def make_directory(self, name: str) -> None:
        with self._errors(name):
            self._ftp.mkd(name)
        log.debug("Created directory %s", name)

    def remove_directory(self, path: str) -> None:
        with self._errors(path):
            self._ftp.rmd(path)
        log.debug("Removed directory %s", path)

    def delete_file(self, path: str) -> bool:
        with self._errors(path):
            try:
                self._ftp.delete(path)
            except ftplib.error_perm as exc:
                log.debug("DELE %s refused: %s", path, exc)
                return False
            return True

    def list_entries(self, path: str) -> list[RemoteEntry]:
        with self._errors(path):
            if self._supports_mlsd:
                try:
                    return self._list_mlsd(path)
                except ftplib.error_perm as exc:
                    if not str(exc).startswith(_NOT_IMPLEMENTED):
                        raise
                    log.debug("MLSD not implemented, falling back to LIST")
                    self._supports_mlsd = False
            return self._list_list(path)

    def _list_mlsd(self, path: str) -> list[RemoteEntry]:
        entries = []
        for name, facts in self._ftp.mlsd(path, facts=["type"]):
            kind = facts.get("type", "").lower()
            if kind in ("cdir", "pdir") or name in (".", ".."):
                continue
            entries.append(RemoteEntry(name=name, is_directory=kind == "dir"))
        return entries

    def _list_list(self, path: str) -> list[RemoteEntry]:
        lines: list[str] = []
        self._ftp.retrlines(f"LIST {path}", lines.append)
        return [entry for entry in map(parse_list_line, lines) if entry is not None]

    # endregion

    # region: streams
    def open_upload_stream(self, name: str) -> BinaryIO:
        with self._errors(name):
            conn = self._ftp.transfercmd(f"STOR {name}")
        channel = _DataChannel(self._ftp, conn, writable=True, path=name, scheme=self.scheme)
        return io.BufferedWriter(channel)  # type: ignore[return-value]

    def open_download_stream(self, path: str) -> BinaryIO:
        with self._errors(path):
            conn = self._ftp.transfercmd(f"RETR {path}")
        channel = _DataChannel(self._ftp, conn, writable=False, path=path, scheme=self.scheme)
        return io.BufferedReader(channel)  # type: ignore[return-value]

    # endregion
