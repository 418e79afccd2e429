"""Durable storage of the application credential.

The credential (app_token) is issued once by the box when the owner approves
the pairing request. Losing it means pairing again from the LCD screen, so
writes must never leave a truncated file behind.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from ...const import TOKEN_FILE_NAME
from ..exceptions import CredentialNotFoundError

_LOGGER = logging.getLogger(__name__)


class CredentialStore(ABC):
    """Storage backend for the application credential.

    Implementations are synchronous; async callers run them in an executor.
    """

    @abstractmethod
    def store(self, credential: str) -> None:
        """Persist the credential, replacing any previous value.

        Raises:
            ValueError: If the credential is empty
            OSError: If the backend cannot be written
        """
        raise NotImplementedError

    @abstractmethod
    def get(self) -> str:
        """Return the stored credential, stripped of surrounding whitespace.

        Raises:
            CredentialNotFoundError: If nothing is stored yet
            OSError: If the backend cannot be read
        """
        raise NotImplementedError


class FileCredentialStore(CredentialStore):
    """Credential kept in a single plain-text file.

    Writes go to a temporary file in the same directory which is flushed,
    fsynced and then renamed over the target, so readers only ever see the
    previous or the new credential.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize the store.

        Args:
            path: Credential file path
        """
        self.path = Path(path)

    @classmethod
    def from_data_directory(cls, data_directory: str | Path) -> FileCredentialStore:
        """Create a store using the default file name inside a data directory."""
        return cls(Path(data_directory) / TOKEN_FILE_NAME)

    def store(self, credential: str) -> None:
        """Atomically write the credential file."""
        credential = credential.strip()
        if not credential:
            raise ValueError("Refusing to store an empty credential")

        _LOGGER.debug("Storing application credential to %s", self.path)

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                tmp_file.write(credential)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

    def get(self) -> str:
        """Read the credential file."""
        _LOGGER.debug("Loading application credential from %s", self.path)

        try:
            credential = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError as err:
            _LOGGER.debug("Credential file %s does not exist", self.path)
            raise CredentialNotFoundError(f"Credential file does not exist: {self.path}") from err

        if not credential:
            raise CredentialNotFoundError(f"Credential file is empty: {self.path}")
        return credential

    def __repr__(self) -> str:
        """Show the path, never the content."""
        return f"{type(self).__name__}(path={str(self.path)!r})"
