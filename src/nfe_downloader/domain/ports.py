"""
Ports — Protocol interfaces for everything outside the domain.

  Domain ← Ports (protocols) ← Adapters (implementations)

Adapters satisfy a port structurally; tests swap them for MagicMock fakes.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from railway.result import Result

from nfe_downloader.domain.models import (
    CredentialHandle,
    KeySelection,
    SynthesizedDocument,
)


@runtime_checkable
class CredentialProvider(Protocol):
    """
    Port: load a signing credential from a path and password.

    Returns CONFIGURATION_ERROR when the resource does not exist and
    AUTHENTICATION_ERROR when it exists but cannot be opened.
    """

    def load(self, path: Path, password: str) -> Result[CredentialHandle]: ...


@runtime_checkable
class KeySource(Protocol):
    """Port: read the list of candidate access keys."""

    def read(self) -> Result[KeySelection]: ...


@runtime_checkable
class DocumentStore(Protocol):
    """
    Port: persist one document under its access key.

    Writing the same key twice replaces the previous artifact.
    """

    def save(self, document: SynthesizedDocument) -> Result[Path]: ...


@runtime_checkable
class Clock(Protocol):
    """Port: the current, timezone-aware moment."""

    def __call__(self) -> datetime: ...
