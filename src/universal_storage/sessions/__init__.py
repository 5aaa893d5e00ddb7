"""Remote session implementations."""

from universal_storage.sessions._ftp import FTPSession
from universal_storage.sessions._local import LocalSession
from universal_storage.sessions._sftp import HostKeyPolicy, SFTPSession

__all__ = ["FTPSession", "HostKeyPolicy", "LocalSession", "SFTPSession"]
