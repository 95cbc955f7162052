"""SSH access to provisioned instances."""

from typing import Protocol

import paramiko

from pool_reconciler.exceptions import RemoteTransportError
from pool_reconciler.logging_config import get_logger

logger = get_logger(__name__)


class RemoteSession(Protocol):
    """An open connection to one remote host."""

    def read_file(self, path: str) -> bytes: ...

    def close(self) -> None: ...


class RemoteTransport(Protocol):
    """Factory for remote sessions."""

    def connect(self, address: str, port: int, user: str, key_path: str) -> RemoteSession: ...


class ParamikoSession:
    """RemoteSession over a paramiko SSH client."""

    def __init__(self, client: paramiko.SSHClient, address: str):
        self.client = client
        self.address = address
        self._sftp = None

    def read_file(self, path: str) -> bytes:
        """Read the bytes of a remote file.

        Raises:
            RemoteTransportError: If the file cannot be read
        """
        try:
            if self._sftp is None:
                self._sftp = self.client.open_sftp()
            with self._sftp.open(path, "rb") as f:
                return f.read()
        except (paramiko.SSHException, OSError) as e:
            raise RemoteTransportError(f"Unable to read {path} on {self.address}", str(e))

    def close(self) -> None:
        """Close the SFTP channel and the SSH connection.

        Raises:
            RemoteTransportError: If closing fails
        """
        try:
            if self._sftp is not None:
                self._sftp.close()
                self._sftp = None
            self.client.close()
        except (paramiko.SSHException, OSError) as e:
            raise RemoteTransportError(f"Error closing SSH connection to {self.address}", str(e))


class ParamikoTransport:
    """RemoteTransport that opens key-authenticated paramiko sessions."""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    def connect(self, address: str, port: int, user: str, key_path: str) -> ParamikoSession:
        """Open an SSH session to ``address``.

        Raises:
            RemoteTransportError: If the connection cannot be established
        """
        logger.debug(f"Connecting to {user}@{address}:{port}")
        client = paramiko.SSHClient()
        # Instances are freshly created, so their host keys are never known in advance
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=address,
                port=port,
                username=user,
                key_filename=key_path,
                timeout=self.timeout,
                allow_agent=True,
                look_for_keys=False,
            )
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise RemoteTransportError(
                f"Unable to connect to SSH at {address}:{port}",
                f"{e}\n\nCheck that the instance is running and accepts the key at {key_path}",
            )
        return ParamikoSession(client, address)
