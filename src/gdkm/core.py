"""Core functionality for gdkm.

This module contains the key generation and the secure clone operation:
the private key is staged on disk only while git needs it, and SSH is
pinned to that single key.
"""

import os
import shlex
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Sequence

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from rich import print as rprint
from rich.console import Console
from rich.markup import escape

# XDG Base Directory paths
CONFIG_DIR = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config")) / "gdkm"

# Fixed name of the transient private key, one clone at a time
STAGED_KEY_NAME = "gdkm_deploy_key"

# Name of the delivered copy inside <dest>/.git
DELIVERED_KEY_NAME = "gdkm_deploy_key"

KEY_FILE_MODE = 0o600

err_console = Console(stderr=True)


class GdkmError(Exception):
    """Base exception for gdkm operations."""

    exit_code = 1


class KeyringIOError(GdkmError):
    """The keyring file exists but could not be read or written."""

    exit_code = 3


class MalformedKeyringError(GdkmError):
    """The keyring file is not a well-formed keyring document."""

    exit_code = 4


class DuplicateIdError(GdkmError):
    exit_code = 5

    def __init__(self, key_id: str):
        super().__init__(f"Key pair id '{key_id}' already exists")
        self.key_id = key_id


class GenerationError(GdkmError):
    exit_code = 6


class DestinationNotEmptyError(GdkmError):
    exit_code = 7

    def __init__(self, dest: Path):
        super().__init__(f"'{dest}' must be empty (or absent) to clone the repository")
        self.dest = dest


class CloneFailedError(GdkmError):
    exit_code = 8


class UnknownFieldError(GdkmError):
    exit_code = 9

    def __init__(self, field: str):
        super().__init__(f"Unrecognized field '{field}'")
        self.field = field


class NotFoundError(GdkmError):
    exit_code = 10

    def __init__(self, key_id: str):
        super().__init__(f"Key pair '{key_id}' does not exist")
        self.key_id = key_id


def run_command(
    cmd: list[str],
    cwd: Path | None = None,
    capture_output: bool = False,
    env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess:
    """Run a command with error handling"""
    try:
        result = subprocess.run(
            cmd, cwd=cwd, capture_output=capture_output, text=True, check=True, env=env
        )
        return result
    except subprocess.CalledProcessError as e:
        raise GdkmError(
            f"Command failed: {' '.join(cmd)}\n{e.stderr.strip() if e.stderr else str(e)}"
        ) from e
    except FileNotFoundError as e:
        raise GdkmError(f"Command not found: {cmd[0]}") from e


def generate_keys() -> tuple[str, str]:
    """Generate an Ed25519 SSH key pair.

    Returns:
        Tuple of (public_key, private_key). The public key is a single
        authorized_keys line ending with a newline; the private key is an
        unencrypted OpenSSH PEM block.

    Raises:
        GenerationError: if the key could not be created or serialized
    """
    try:
        private_key = Ed25519PrivateKey.generate()
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.OpenSSH,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")
        public_openssh = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.OpenSSH,
            format=serialization.PublicFormat.OpenSSH,
        ).decode("ascii")
    except Exception as e:
        raise GenerationError(f"Failed to generate Ed25519 key pair: {e}") from e

    return public_openssh.strip() + "\n", private_pem


def _write_private_key(path: Path, private_key: str, exclusive: bool = False):
    """Write key material readable by the owner only.

    With ``exclusive`` the file must not exist yet (FileExistsError
    otherwise), and a partially written file is removed. Without it an
    existing file is truncated and its mode forced, ssh refuses keys
    readable by group or others.
    """
    flags = os.O_WRONLY | os.O_CREAT | getattr(os, "O_NOFOLLOW", 0)
    flags |= os.O_EXCL if exclusive else os.O_TRUNC
    fd = os.open(path, flags, KEY_FILE_MODE)
    try:
        os.fchmod(fd, KEY_FILE_MODE)
        os.write(fd, private_key.encode("utf-8"))
    except OSError:
        os.close(fd)
        if exclusive:
            path.unlink(missing_ok=True)
        raise
    os.close(fd)


def _remove_staged_key(path: Path, propagating: bool):
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        if propagating:
            # keep the error already in flight
            err_console.print(
                f"[yellow]Warning: failed to delete staged private key {escape(str(path))}: {escape(str(e))}[/yellow]"
            )
            return
        raise KeyringIOError(f"Failed to delete staged private key {path}: {e}") from e


@contextmanager
def staged_key(private_key: str, path: Path) -> Generator[Path, None, None]:
    """Stage a private key at ``path`` for the duration of the block.

    The file goes absent -> staged (0600) -> removed, and is removed on
    every exit path, including interrupts. A file already at ``path`` is
    never touched: staging is refused instead.
    """
    try:
        _write_private_key(path, private_key, exclusive=True)
    except FileExistsError as e:
        raise KeyringIOError(
            f"Staged key path {path} already exists, refusing to overwrite it"
        ) from e
    except OSError as e:
        raise KeyringIOError(f"Failed to stage private key at {path}: {e}") from e

    try:
        yield path
    except BaseException:
        _remove_staged_key(path, propagating=True)
        raise
    _remove_staged_key(path, propagating=False)


def ssh_command(key_path: Path, ssh_options: Sequence[str] = ()) -> str:
    """Build the ssh invocation git should use, pinned to a single key.

    IdentitiesOnly keeps the agent from offering any other identity.
    """
    parts = ["ssh", "-i", shlex.quote(str(key_path)), "-o", "IdentitiesOnly=yes"]
    for option in ssh_options:
        parts.extend(["-o", shlex.quote(option)])
    return " ".join(parts)


def check_destination(dest: Path):
    """Raise DestinationNotEmptyError unless dest is absent or an empty directory."""
    if not dest.exists() and not dest.is_symlink():
        return
    if not dest.is_dir():
        raise DestinationNotEmptyError(dest)
    try:
        with os.scandir(dest) as entries:
            has_entries = any(True for _ in entries)
    except OSError as e:
        raise KeyringIOError(f"Failed to check '{dest}' directory: {e}") from e
    if has_entries:
        raise DestinationNotEmptyError(dest)


def deliver_key(private_key: str, dest: Path, ssh_options: Sequence[str] = ()) -> Path:
    """Leave a copy of the key inside the clone and make git use it.

    The copy lives in ``<dest>/.git`` so it never shows up as an untracked
    file, and the clone's local core.sshCommand points at it.
    """
    key_path = (dest / ".git" / DELIVERED_KEY_NAME).resolve()
    try:
        _write_private_key(key_path, private_key)
    except OSError as e:
        raise KeyringIOError(f"Failed to copy private key into {dest}: {e}") from e

    run_command(
        ["git", "config", "core.sshCommand", ssh_command(key_path, ssh_options)],
        cwd=dest,
        capture_output=True,
    )
    return key_path


def clone_repository(
    repository_url: str,
    private_key: str,
    dest: Path,
    *,
    staging_dir: Path | None = None,
    deliver: bool = False,
    ssh_options: Sequence[str] = (),
    capture_output: bool = True,
):
    """Clone a git repository over SSH using only the given private key.

    The destination is checked before any key material is written. The key
    is staged in ``staging_dir`` (default: the working directory) under a
    fixed name and removed whatever happens to the clone.

    Args:
        repository_url: SSH remote address
        private_key: OpenSSH private key text
        dest: Directory to clone into, absent or empty
        staging_dir: Where the transient key file is written
        deliver: Also leave a copy of the key in ``<dest>/.git``
        ssh_options: Extra ``ssh -o`` values
        capture_output: Capture git output instead of streaming it

    Raises:
        DestinationNotEmptyError: dest exists and is not an empty directory
        CloneFailedError: git could not be started or exited non-zero
    """
    dest = Path(dest)
    check_destination(dest)

    key_path = (Path(staging_dir) if staging_dir else Path.cwd()) / STAGED_KEY_NAME
    key_path = key_path.absolute()

    with staged_key(private_key, key_path):
        clone_cmd = ["git", "clone", repository_url, str(dest)]
        # Pinned for this process only, .git/config must not refer to the staged key
        env = {**os.environ, "GIT_SSH_COMMAND": ssh_command(key_path, ssh_options)}

        rprint(f"[blue]Cloning repository: {escape(repository_url)}[/blue]")
        try:
            run_command(clone_cmd, capture_output=capture_output, env=env)
        except GdkmError as e:
            raise CloneFailedError(f"Failed to run git clone: {e}") from e

        if deliver:
            key_copy = deliver_key(private_key, dest, ssh_options)
            rprint(f"[blue]Private key copied to {escape(str(key_copy))}[/blue]")
