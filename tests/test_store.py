"""Tests for the SFTP-backed remote store."""

import socket
import stat
from unittest.mock import patch

import paramiko
import pytest

from pyrcc.exceptions import (
    AuthenticationError,
    ConfigError,
    RemoteConnectionError,
    RemotePathNotFoundError,
    RemotePermissionError,
    RemoteStoreError,
)
from pyrcc.profile import Profile
from pyrcc.store import SftpStore


def make_attrs(filename, mode, size=0, atime=1_700_000_000):
    attrs = paramiko.SFTPAttributes()
    attrs.filename = filename
    attrs.st_mode = mode
    attrs.st_size = size
    attrs.st_atime = atime
    attrs.st_mtime = atime
    return attrs


DIR_MODE = stat.S_IFDIR | 0o755
FILE_MODE = stat.S_IFREG | 0o644


@pytest.fixture
def profile():
    return Profile(
        host="example.org",
        username="deploy",
        password="secret",
        port=2222,
        working_directory="/srv",
    )


@pytest.fixture
def ssh_client():
    """Patch paramiko.SSHClient and return the client instance."""
    with patch("pyrcc.store.paramiko.SSHClient") as client_class:
        client = client_class.return_value
        sftp = client.open_sftp.return_value
        sftp.stat.return_value = make_attrs("srv", DIR_MODE)
        sftp.getcwd.return_value = "/srv"
        yield client


@pytest.fixture
def connected(profile, ssh_client):
    store = SftpStore(profile, timeout=5)
    store.connect()
    return store


class TestConnect:
    """Tests for SftpStore.connect."""

    def test_password_auth(self, profile, ssh_client):
        SftpStore(profile, timeout=5).connect()

        ssh_client.connect.assert_called_once_with(
            hostname="example.org",
            port=2222,
            username="deploy",
            timeout=5,
            allow_agent=False,
            look_for_keys=False,
            password="secret",
        )
        ssh_client.set_missing_host_key_policy.assert_called_once()

    def test_key_auth_uses_key_file(self, profile, ssh_client):
        profile.is_key_auth = True
        profile.password = "/home/deploy/.ssh/id_ed25519"

        SftpStore(profile).connect()

        kwargs = ssh_client.connect.call_args.kwargs
        assert kwargs["key_filename"] == "/home/deploy/.ssh/id_ed25519"
        assert "password" not in kwargs

    def test_starts_in_working_directory(self, connected, ssh_client):
        sftp = ssh_client.open_sftp.return_value
        sftp.chdir.assert_called_once_with("/srv")
        assert connected.current_working_directory == "/srv"
        assert connected.is_connected

    @pytest.mark.parametrize(
        "error,expected",
        [
            (paramiko.AuthenticationException("denied"), AuthenticationError),
            (socket.timeout("timed out"), RemoteConnectionError),
            (ConnectionRefusedError("refused"), RemoteConnectionError),
            (paramiko.SSHException("banner"), RemoteConnectionError),
            (FileNotFoundError("no key"), ConfigError),
        ],
    )
    def test_connection_errors_are_mapped(self, profile, ssh_client, error, expected):
        ssh_client.connect.side_effect = error

        with pytest.raises(expected):
            SftpStore(profile).connect()
        ssh_client.close.assert_called()

    def test_missing_working_directory_falls_back_to_root(self, profile, ssh_client):
        """Test a removed profile directory still allows a connection."""
        sftp = ssh_client.open_sftp.return_value

        def stat_path(path):
            if path == "/srv":
                raise FileNotFoundError(2, "No such file")
            return make_attrs("/", DIR_MODE)

        sftp.stat.side_effect = stat_path
        sftp.getcwd.return_value = "/"

        store = SftpStore(profile)
        store.connect()

        assert store.is_connected
        assert store.current_working_directory == "/"
        sftp.chdir.assert_called_once_with("/")
        ssh_client.close.assert_not_called()

    def test_unreadable_working_directory_falls_back_to_root(
        self, profile, ssh_client
    ):
        sftp = ssh_client.open_sftp.return_value
        sftp.chdir.side_effect = [PermissionError(13, "Permission denied"), None]
        sftp.getcwd.return_value = "/"

        store = SftpStore(profile)
        store.connect()

        assert store.current_working_directory == "/"
        assert sftp.chdir.call_args_list[-1].args == ("/",)

    def test_no_usable_directory(self, profile, ssh_client):
        sftp = ssh_client.open_sftp.return_value
        sftp.stat.side_effect = FileNotFoundError(2, "No such file")

        store = SftpStore(profile)
        with pytest.raises(RemotePathNotFoundError):
            store.connect()
        assert not store.is_connected
        ssh_client.close.assert_called_once()

    def test_disconnect_closes_channels(self, connected, ssh_client):
        connected.disconnect()
        connected.disconnect()

        ssh_client.open_sftp.return_value.close.assert_called_once()
        ssh_client.close.assert_called_once()
        assert not connected.is_connected

    def test_operations_require_connection(self, profile):
        with pytest.raises(RemoteStoreError, match="Not connected"):
            SftpStore(profile).get_attributes("/")


class TestOperations:
    """Tests for SftpStore file operations."""

    def test_list_directory_converts_entries(self, connected, ssh_client):
        sftp = ssh_client.open_sftp.return_value
        sftp.listdir_attr.return_value = [
            make_attrs(".", DIR_MODE),
            make_attrs("..", DIR_MODE),
            make_attrs("logs", DIR_MODE),
            make_attrs("app.py", FILE_MODE, size=120),
        ]

        entries = connected.list_directory("/srv")

        assert [(e.name, e.path, e.is_directory, e.size) for e in entries] == [
            ("logs", "/srv/logs", True, 0),
            ("app.py", "/srv/app.py", False, 120),
        ]
        assert entries[1].accessed is not None

    def test_get_attributes_of_file(self, connected, ssh_client):
        sftp = ssh_client.open_sftp.return_value
        sftp.stat.return_value = make_attrs("x", FILE_MODE, size=7)

        entry = connected.get_attributes("/srv/x")

        assert entry.name == "x"
        assert entry.size == 7
        assert entry.kind == "file"

    def test_exists(self, connected, ssh_client):
        sftp = ssh_client.open_sftp.return_value
        sftp.stat.side_effect = FileNotFoundError(2, "No such file")

        assert connected.exists("/srv/missing") is False

    @pytest.mark.parametrize(
        "error,expected",
        [
            (FileNotFoundError(2, "No such file"), RemotePathNotFoundError),
            (PermissionError(13, "Permission denied"), RemotePermissionError),
            (IOError("Failure"), RemoteStoreError),
            (paramiko.SSHException("closed"), RemoteStoreError),
        ],
    )
    def test_errors_are_mapped(self, connected, ssh_client, error, expected):
        ssh_client.open_sftp.return_value.remove.side_effect = error

        with pytest.raises(expected):
            connected.delete_file("/srv/x")

    def test_open_write_pipelines(self, connected, ssh_client):
        handle = connected.open_write("/srv/out.bin")

        ssh_client.open_sftp.return_value.open.assert_called_with("/srv/out.bin", "wb")
        handle.set_pipelined.assert_called_once_with(True)

    def test_open_read_prefetches(self, connected, ssh_client):
        handle = connected.open_read("/srv/in.bin")

        handle.prefetch.assert_called_once()

    def test_mutations_are_forwarded(self, connected, ssh_client):
        sftp = ssh_client.open_sftp.return_value

        connected.create_directory("/srv/new")
        connected.delete_directory("/srv/old")
        connected.rename_file("/srv/a", "/srv/b")

        sftp.mkdir.assert_called_once_with("/srv/new")
        sftp.rmdir.assert_called_once_with("/srv/old")
        sftp.rename.assert_called_once_with("/srv/a", "/srv/b")

    def test_change_directory_relative(self, connected, ssh_client):
        sftp = ssh_client.open_sftp.return_value
        sftp.getcwd.return_value = "/srv/logs"

        assert connected.change_working_directory("logs") == "/srv/logs"
        sftp.chdir.assert_called_with("/srv/logs")

    def test_change_directory_to_file_fails(self, connected, ssh_client):
        sftp = ssh_client.open_sftp.return_value
        sftp.stat.return_value = make_attrs("f", FILE_MODE)

        with pytest.raises(RemotePathNotFoundError, match="Not a directory"):
            connected.change_working_directory("/srv/f")
        assert connected.current_working_directory == "/srv"

    def test_invoke_shell(self, connected, ssh_client):
        channel = connected.invoke_shell(width=100, height=40)

        ssh_client.invoke_shell.assert_called_once_with(width=100, height=40)
        assert channel is ssh_client.invoke_shell.return_value


class TestContextManager:
    """Tests for using the store as a context manager."""

    def test_with_block_disconnects(self, profile, ssh_client):
        with SftpStore(profile) as store:
            assert store.is_connected
        assert not store.is_connected

    def test_config_timeout_is_default(self, profile):
        with patch("pyrcc.store.config") as config:
            config.connect_timeout = 42.0
            assert SftpStore(profile).timeout == 42.0


