"""
SFTP adapter using paramiko.

Maps the adapter contract onto an SSH/SFTP session: root-relative paths
are resolved below ``SSHConfig.root``, visibility becomes chmod
permissions, and dropped connections are re-established transparently.
"""

import logging
import os
import posixpath
import shutil
import stat
import threading
import time
from pathlib import Path
from typing import BinaryIO

import paramiko

from ..config import ConnectionConfig, SSHConfig
from ..metadata import TYPE_DIR, TYPE_FILE, Metadata
from ..mimetype import guess_mimetype
from ..options import VISIBILITY_PUBLIC, Config
from .base import mode_for_visibility, visibility_from_mode

logger = logging.getLogger(__name__)

# Failures that mean the session is unusable and worth one more attempt
RETRYABLE_ERRORS = (TimeoutError, ConnectionError, EOFError, paramiko.SSHException)


class TrustOnFirstUsePolicy(paramiko.MissingHostKeyPolicy):
    """
    Trust-on-first-use host key policy (same model as OpenSSH).

    - Unknown host: accept and save key to ~/.ssh/known_hosts
    - Known host, same key: accept
    - Known host, CHANGED key: reject (possible MITM attack)
    """

    def __init__(self):
        self._known_hosts_path = Path.home() / ".ssh" / "known_hosts"

    def missing_host_key(self, client, hostname, key):
        host_keys = client.get_host_keys()
        existing = host_keys.lookup(hostname)

        if existing is not None:
            existing_key = existing.get(key.get_name())
            if existing_key is not None and existing_key != key:
                raise paramiko.SSHException(
                    f"Host key for {hostname} has CHANGED. "
                    f"This could indicate a man-in-the-middle attack. "
                    f"If the server key was legitimately changed, remove the old "
                    f"entry from {self._known_hosts_path} and try again."
                )

        logger.info("Adding host key for %s to known_hosts", hostname)
        host_keys.add(hostname, key.get_name(), key)

        try:
            self._known_hosts_path.parent.mkdir(parents=True, exist_ok=True)
            host_keys.save(str(self._known_hosts_path))
        except OSError as e:
            logger.warning("Could not save known_hosts: %s", e)


class SFTPAdapter:
    """
    Storage adapter over SSH/SFTP with connection management and retries
    of connection-level failures.
    """

    def __init__(
        self,
        ssh_config: SSHConfig,
        conn_config: ConnectionConfig,
        default_visibility: str = VISIBILITY_PUBLIC,
    ):
        self.ssh_config = ssh_config
        self.conn_config = conn_config
        self.default_visibility = default_visibility
        self._root = "/" + ssh_config.root.strip("/") if ssh_config.root.strip("/") else "/"
        self._ssh: paramiko.SSHClient | None = None
        self._sftp: paramiko.SFTPClient | None = None
        self._lock = threading.RLock()
        self._connected = False

    def connect(self) -> None:
        """Establish SSH connection and open SFTP session."""
        with self._lock:
            self._connect_internal()

    def _connect_internal(self) -> None:
        """Internal connect without lock - caller must hold lock."""
        try:
            self._ssh = paramiko.SSHClient()
            self._ssh.load_system_host_keys()
            try:
                self._ssh.load_host_keys(str(Path.home() / ".ssh" / "known_hosts"))
            except FileNotFoundError:
                pass
            self._ssh.set_missing_host_key_policy(TrustOnFirstUsePolicy())

            connect_kwargs: dict = {
                "hostname": self.ssh_config.host,
                "port": self.ssh_config.port,
                "timeout": self.conn_config.timeout_seconds,
                "allow_agent": self.ssh_config.use_agent,
            }
            if self.ssh_config.username:
                connect_kwargs["username"] = self.ssh_config.username

            # Auth priority: key file -> password -> agent/default keys
            if self.ssh_config.key_file:
                connect_kwargs["key_filename"] = os.path.expanduser(self.ssh_config.key_file)
                if self.ssh_config.key_passphrase:
                    connect_kwargs["passphrase"] = self.ssh_config.key_passphrase
                connect_kwargs["look_for_keys"] = True
            elif self.ssh_config.password:
                connect_kwargs["password"] = self.ssh_config.password
                connect_kwargs["look_for_keys"] = False
            else:
                connect_kwargs["look_for_keys"] = True

            logger.debug("Connecting to SSH %s:%d", self.ssh_config.host, self.ssh_config.port)
            self._ssh.connect(**connect_kwargs)

            transport = self._ssh.get_transport()
            if transport is not None and self.conn_config.keepalive_interval_seconds:
                transport.set_keepalive(self.conn_config.keepalive_interval_seconds)

            self._sftp = self._ssh.open_sftp()
            self._connected = True
            logger.info(
                "Connected to SSH server %s:%d (root %s)",
                self.ssh_config.host,
                self.ssh_config.port,
                self._root,
            )

        except paramiko.AuthenticationException as e:
            self._cleanup_connections()
            logger.error("SSH authentication failed: %s", e)
            raise PermissionError(f"SSH authentication failed: {e}") from e
        except TimeoutError as e:
            self._cleanup_connections()
            logger.error("SSH connection timeout: %s", e)
            raise TimeoutError(f"SSH connection timeout: {e}") from e
        except (OSError, paramiko.SSHException) as e:
            self._cleanup_connections()
            logger.error("SSH connection failed: %s", e)
            raise ConnectionError(f"SSH connection failed: {e}") from e

    def _cleanup_connections(self) -> None:
        """Close SFTP and SSH without raising."""
        self._connected = False
        if self._sftp:
            try:
                self._sftp.close()
            except Exception as e:
                logger.debug("Error closing SFTP session: %s", e)
            self._sftp = None
        if self._ssh:
            try:
                self._ssh.close()
            except Exception as e:
                logger.debug("Error closing SSH client: %s", e)
            self._ssh = None

    def disconnect(self) -> None:
        """Close SFTP session and SSH connection."""
        with self._lock:
            self._cleanup_connections()
            logger.debug("SSH connection closed")

    def _ensure_connected(self) -> None:
        """Ensure connection is active, reconnect if needed. Caller must hold lock."""
        if not self._connected or not self._sftp or not self._ssh:
            logger.debug("SSH connection not active, connecting")
            self._connect_internal()
            return

        transport = self._ssh.get_transport()
        if transport is None or not transport.is_active():
            logger.debug("SSH transport lost, reconnecting")
            self._cleanup_connections()
            self._connect_internal()

    def _remote(self, path: str) -> str:
        """Absolute remote path for a root-relative path."""
        if not path:
            return self._root
        return posixpath.join(self._root, path)

    def _with_retry(self, operation: str, func, *args, attempts: int | None = None, **kwargs):
        """
        Execute a function with retry logic.

        Only connection-level failures are retried; file errors such as
        FileNotFoundError propagate immediately. ``attempts`` overrides
        ConnectionConfig.retry_attempts.
        """
        attempts = attempts or self.conn_config.retry_attempts
        last_exception = None

        for attempt in range(attempts):
            try:
                with self._lock:
                    self._ensure_connected()
                    return func(*args, **kwargs)
            except RETRYABLE_ERRORS as e:
                last_exception = e
                logger.warning(
                    "%s failed (attempt %d/%d): %s",
                    operation,
                    attempt + 1,
                    attempts,
                    e,
                )
                if attempt < attempts - 1:
                    time.sleep(self.conn_config.retry_delay_seconds)
                    with self._lock:
                        self._cleanup_connections()

        logger.error("%s failed after %d attempts", operation, attempts)
        raise ConnectionError(f"{operation} failed: {last_exception}") from last_exception

    def _to_metadata(self, path: str, attr: paramiko.SFTPAttributes) -> Metadata:
        mode = attr.st_mode or 0
        timestamp = int(attr.st_mtime) if attr.st_mtime else None
        visibility = visibility_from_mode(mode)
        if stat.S_ISDIR(mode):
            return Metadata(path=path, type=TYPE_DIR, timestamp=timestamp, visibility=visibility)
        return Metadata(
            path=path,
            type=TYPE_FILE,
            size=attr.st_size or 0,
            timestamp=timestamp,
            visibility=visibility,
            mimetype=guess_mimetype(path),
        )

    def _makedirs(self, remote: str) -> None:
        """mkdir -p. Caller must hold lock."""
        current = ""
        for part in remote.strip("/").split("/"):
            if not part:
                continue
            current = current + "/" + part
            try:
                self._sftp.stat(current)
            except FileNotFoundError:
                self._sftp.mkdir(current, mode=mode_for_visibility(self.default_visibility, True))
                logger.debug("Created directory: %s", current)

    def _apply_write_config(self, remote: str, config: Config) -> None:
        if config.visibility:
            self._sftp.chmod(remote, mode_for_visibility(config.visibility, is_dir=False))
        if config.timestamp is not None:
            self._sftp.utime(remote, (config.timestamp, config.timestamp))

    def has(self, path: str) -> bool:
        remote = self._remote(path)

        def _has_internal() -> bool:
            try:
                self._sftp.stat(remote)
                return True
            except FileNotFoundError:
                return False

        return self._with_retry(f"has({remote})", _has_internal)

    def read(self, path: str) -> bytes:
        remote = self._remote(path)

        def _read_internal() -> bytes:
            with self._sftp.open(remote, "rb") as f:
                data = f.read()
            logger.debug("Read %d bytes from %s", len(data), remote)
            return data

        return self._with_retry(f"read({remote})", _read_internal)

    def read_stream(self, path: str) -> BinaryIO:
        remote = self._remote(path)

        def _read_stream_internal() -> BinaryIO:
            handle = self._sftp.open(remote, "rb")
            handle.prefetch()
            return handle

        return self._with_retry(f"read_stream({remote})", _read_stream_internal)

    def write(self, path: str, contents: bytes, config: Config) -> Metadata:
        remote = self._remote(path)

        def _write_internal() -> Metadata:
            self._makedirs(posixpath.dirname(remote))
            with self._sftp.open(remote, "wb") as f:
                f.write(contents)
            self._apply_write_config(remote, config)
            logger.debug("Wrote %d bytes to %s", len(contents), remote)
            metadata = self._to_metadata(path, self._sftp.stat(remote))
            return metadata.merged(mimetype=config.mimetype or guess_mimetype(path, contents[:1024]))

        return self._with_retry(f"write({remote})", _write_internal)

    def write_stream(self, path: str, stream: BinaryIO, config: Config) -> Metadata:
        """
        Upload a stream.

        A retry restarts the upload from the stream's initial position, so
        non-seekable streams get a single attempt.
        """
        remote = self._remote(path)
        seekable = getattr(stream, "seekable", None)
        start = stream.tell() if callable(seekable) and seekable() else None

        def _write_stream_internal() -> Metadata:
            if start is not None:
                stream.seek(start)
            self._makedirs(posixpath.dirname(remote))
            attr = self._sftp.putfo(stream, remote, file_size=config.size or 0)
            self._apply_write_config(remote, config)
            if config.visibility or config.timestamp is not None:
                attr = self._sftp.stat(remote)
            return self._to_metadata(path, attr).merged(mimetype=config.mimetype)

        return self._with_retry(
            f"write_stream({remote})",
            _write_stream_internal,
            attempts=None if start is not None else 1,
        )

    def update(self, path: str, contents: bytes, config: Config) -> Metadata:
        if not self.has(path):
            raise FileNotFoundError(f"No such file: {path}")
        return self.write(path, contents, config)

    def update_stream(self, path: str, stream: BinaryIO, config: Config) -> Metadata:
        if not self.has(path):
            raise FileNotFoundError(f"No such file: {path}")
        return self.write_stream(path, stream, config)

    def rename(self, path: str, new_path: str) -> bool:
        old_remote = self._remote(path)
        new_remote = self._remote(new_path)

        def _rename_internal() -> bool:
            self._makedirs(posixpath.dirname(new_remote))
            self._sftp.posix_rename(old_remote, new_remote)
            logger.debug("Renamed: %s -> %s", old_remote, new_remote)
            return True

        return self._with_retry(f"rename({old_remote}, {new_remote})", _rename_internal)

    def copy(self, path: str, new_path: str) -> bool:
        """SFTP has no server-side copy; stream the file through the session."""
        old_remote = self._remote(path)
        new_remote = self._remote(new_path)

        def _copy_internal() -> bool:
            self._makedirs(posixpath.dirname(new_remote))
            with self._sftp.open(old_remote, "rb") as source:
                source.prefetch()
                with self._sftp.open(new_remote, "wb") as target:
                    shutil.copyfileobj(source, target)
            mode = self._sftp.stat(old_remote).st_mode
            if mode:
                self._sftp.chmod(new_remote, stat.S_IMODE(mode))
            logger.debug("Copied: %s -> %s", old_remote, new_remote)
            return True

        return self._with_retry(f"copy({old_remote}, {new_remote})", _copy_internal)

    def delete(self, path: str) -> bool:
        remote = self._remote(path)

        def _delete_internal() -> bool:
            self._sftp.remove(remote)
            logger.debug("Deleted file: %s", remote)
            return True

        return self._with_retry(f"delete({remote})", _delete_internal)

    def _remove_tree(self, remote: str) -> None:
        for attr in self._sftp.listdir_attr(remote):
            child = posixpath.join(remote, attr.filename)
            if attr.st_mode and stat.S_ISDIR(attr.st_mode):
                self._remove_tree(child)
            else:
                self._sftp.remove(child)
        self._sftp.rmdir(remote)

    def delete_dir(self, path: str) -> bool:
        remote = self._remote(path)

        def _delete_dir_internal() -> bool:
            self._remove_tree(remote)
            logger.debug("Deleted directory: %s", remote)
            return True

        return self._with_retry(f"delete_dir({remote})", _delete_dir_internal)

    def create_dir(self, path: str, config: Config) -> Metadata:
        remote = self._remote(path)
        visibility = config.visibility or self.default_visibility

        def _create_dir_internal() -> Metadata:
            try:
                attr = self._sftp.stat(remote)
            except FileNotFoundError:
                attr = None
            if attr is not None and not stat.S_ISDIR(attr.st_mode or 0):
                raise FileExistsError(f"A file exists at: {path}")
            self._makedirs(remote)
            self._sftp.chmod(remote, mode_for_visibility(visibility, is_dir=True))
            metadata = self._to_metadata(path, self._sftp.stat(remote))
            if config.directory_attributes:
                metadata = Metadata(
                    path=metadata.path,
                    type=metadata.type,
                    timestamp=metadata.timestamp,
                    visibility=metadata.visibility,
                    extra=dict(config.directory_attributes),
                )
            return metadata

        return self._with_retry(f"create_dir({remote})", _create_dir_internal)

    def set_visibility(self, path: str, visibility: str) -> bool:
        remote = self._remote(path)

        def _set_visibility_internal() -> bool:
            is_dir = stat.S_ISDIR(self._sftp.stat(remote).st_mode or 0)
            self._sftp.chmod(remote, mode_for_visibility(visibility, is_dir))
            return True

        return self._with_retry(f"set_visibility({remote})", _set_visibility_internal)

    def get_metadata(self, path: str) -> Metadata:
        remote = self._remote(path)
        return self._with_retry(
            f"get_metadata({remote})", lambda: self._to_metadata(path, self._sftp.stat(remote))
        )

    def get_size(self, path: str) -> int | None:
        return self.get_metadata(path).size

    def get_mimetype(self, path: str) -> str | None:
        return self.get_metadata(path).mimetype

    def get_timestamp(self, path: str) -> int | None:
        return self.get_metadata(path).timestamp

    def get_visibility(self, path: str) -> str | None:
        return self.get_metadata(path).visibility

    def list_contents(self, directory: str, recursive: bool) -> list[Metadata]:
        remote = self._remote(directory)

        def _walk(remote_dir: str, relative_dir: str, results: list[Metadata]) -> None:
            for attr in self._sftp.listdir_attr(remote_dir):
                if attr.filename in (".", ".."):
                    continue
                relative = f"{relative_dir}/{attr.filename}" if relative_dir else attr.filename
                metadata = self._to_metadata(relative, attr)
                results.append(metadata)
                if recursive and metadata.is_dir:
                    _walk(posixpath.join(remote_dir, attr.filename), relative, results)

        def _list_internal() -> list[Metadata]:
            results: list[Metadata] = []
            _walk(remote, directory, results)
            logger.debug("Listed %d entries in %s", len(results), remote)
            return results

        return self._with_retry(f"list_contents({remote})", _list_internal)
