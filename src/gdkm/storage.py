"""Keyring storage for gdkm.

The keyring is a JSON object mapping each key pair id to its record:

    {"proj1": {"Id": "proj1", "PublicKey": "...", "PrivateKey": "...",
               "RepositoryURL": "git@github.com:owner/repo.git"}}

The whole mapping is read and written at once. Secrets are stored in the
clear; the file is created readable by its owner only.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from rich.console import Console

from .core import (
    DuplicateIdError,
    KeyringIOError,
    MalformedKeyringError,
    NotFoundError,
    UnknownFieldError,
)

err_console = Console(stderr=True)

KEYRING_FILE_MODE = 0o600


@dataclass(frozen=True)
class KeyPair:
    """One managed SSH identity, scoped to a single repository."""

    id: str
    public_key: str
    private_key: str
    repository_url: str

    def to_dict(self) -> dict[str, str]:
        return {
            "Id": self.id,
            "PublicKey": self.public_key,
            "PrivateKey": self.private_key,
            "RepositoryURL": self.repository_url,
        }

    @classmethod
    def from_dict(cls, data: Any) -> KeyPair:
        if not isinstance(data, dict):
            raise MalformedKeyringError(
                f"Key pair record must be an object, got {type(data).__name__}"
            )

        values = {}
        for name in ("Id", "PublicKey", "PrivateKey", "RepositoryURL"):
            value = data.get(name)
            if not isinstance(value, str):
                raise MalformedKeyringError(
                    f"Key pair record field '{name}' is missing or not a string"
                )
            values[name] = value

        return cls(
            id=values["Id"],
            public_key=values["PublicKey"],
            private_key=values["PrivateKey"],
            repository_url=values["RepositoryURL"],
        )


class KeyField(str, Enum):
    """Fields of a key pair that can be queried by name."""

    PUBLIC_KEY = "PublicKey"
    PRIVATE_KEY = "PrivateKey"
    REPOSITORY_URL = "RepositoryURL"


_FIELD_ACCESSORS: dict[KeyField, Callable[[KeyPair], str]] = {
    KeyField.PUBLIC_KEY: lambda kp: kp.public_key,
    KeyField.PRIVATE_KEY: lambda kp: kp.private_key,
    KeyField.REPOSITORY_URL: lambda kp: kp.repository_url,
}


class Keyring(dict):
    """Mapping of key pair id to KeyPair.

    ``is_new`` is True when the keyring was synthesized because its file
    did not exist yet. It is not persisted and does not take part in
    equality.
    """

    def __init__(self, *args, is_new: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.is_new = is_new


def load_keyring(path: Path) -> Keyring:
    """Load a keyring from a JSON file.

    A missing file is not an error: an empty keyring is returned so that
    the first ``generate`` can create it.

    Raises:
        KeyringIOError: the file exists but cannot be read
        MalformedKeyringError: the file is not a valid keyring document
    """
    path = Path(path)
    try:
        data = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        err_console.print(f"[yellow]Warning: key ring '{path}' does not exist[/yellow]")
        return Keyring(is_new=True)
    except UnicodeDecodeError as e:
        raise MalformedKeyringError(f"Key ring '{path}' is not UTF-8 text: {e}") from e
    except OSError as e:
        raise KeyringIOError(f"Failed to read key ring file '{path}': {e}") from e

    try:
        raw = json.loads(data)
    except json.JSONDecodeError as e:
        raise MalformedKeyringError(
            f"Failed to read JSON from key ring file '{path}': {e}"
        ) from e

    if not isinstance(raw, dict):
        raise MalformedKeyringError(
            f"Key ring '{path}' must contain a JSON object, got {type(raw).__name__}"
        )

    keyring = Keyring()
    for key_id, record in raw.items():
        keypair = KeyPair.from_dict(record)
        if keypair.id != key_id:
            raise MalformedKeyringError(
                f"Key pair stored under '{key_id}' has mismatching Id '{keypair.id}'"
            )
        keyring[key_id] = keypair

    return keyring


def save_keyring(keyring: Keyring, path: Path):
    """Write the whole keyring to ``path``, replacing previous content.

    The document is written to a temporary file in the same directory and
    moved into place, so an interrupted save leaves the old file intact.

    Raises:
        KeyringIOError: the file could not be written
    """
    path = Path(path)
    data = json.dumps(
        {key_id: keypair.to_dict() for key_id, keypair in keyring.items()},
        indent=2,
        sort_keys=True,
    )

    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # mkstemp creates the file with mode 0600
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data + "\n")
        os.chmod(tmp_name, KEYRING_FILE_MODE)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise KeyringIOError(f"Failed to save the key ring to '{path}': {e}") from e

    keyring.is_new = False


def insert_keypair(keyring: Keyring, keypair: KeyPair) -> Keyring:
    """Add a new key pair, refusing to overwrite an existing id.

    Raises:
        DuplicateIdError: the id is already in the keyring, which is left
            unchanged
    """
    if keypair.id in keyring:
        raise DuplicateIdError(keypair.id)
    keyring[keypair.id] = keypair
    return keyring


def get_keypair(keyring: Keyring, key_id: str) -> KeyPair:
    """Get a key pair by id, raising NotFoundError if absent"""
    try:
        return keyring[key_id]
    except KeyError:
        raise NotFoundError(key_id) from None


def get_field(keyring: Keyring, key_id: str, field_name: str) -> str:
    """Get a single field of a key pair by its public name.

    Only the names in KeyField are accepted.
    """
    keypair = get_keypair(keyring, key_id)
    try:
        field = KeyField(field_name)
    except ValueError:
        raise UnknownFieldError(field_name) from None
    return _FIELD_ACCESSORS[field](keypair)


def list_ids(keyring: Keyring) -> list[str]:
    return sorted(keyring)
