"""
File system document store — one XML file per access key.

Adapter layer — implements the DocumentStore port.

Layout: <output_dir>/<access_key>.xml. Saving a key that already has a file
overwrites it, so re-running a batch is idempotent by key. Content is
written to a uniquely named sibling temporary file first and moved into
place, so a crashed write never leaves a truncated document behind and
concurrent saves of the same key do not collide.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result

from nfe_downloader.domain.models import SynthesizedDocument

log = structlog.get_logger()


class FileSystemDocumentStore:
    """Persist synthesized documents under a fixed directory."""

    suffix = ".xml"

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = output_dir

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def path_for(self, access_key: str) -> Path:
        return self._output_dir / f"{access_key}{self.suffix}"

    def prepare(self) -> Result[Path]:
        """Create the output directory if needed."""
        return Result.from_computation(
            lambda: self._make_dir(),
            ErrorCode.STORAGE_ERROR,
            f"Cannot create output directory {self._output_dir}",
        )

    def save(self, document: SynthesizedDocument) -> Result[Path]:
        return Result.from_computation(
            lambda: self._write(document),
            ErrorCode.STORAGE_ERROR,
            f"Failed to write document {document.access_key}",
        )

    def _make_dir(self) -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        return self._output_dir

    def _write(self, document: SynthesizedDocument) -> Path:
        target = self.path_for(document.access_key)
        # one temp file per write, the same key may be saved concurrently
        fd, name = tempfile.mkstemp(
            dir=self._output_dir, prefix=f".{target.name}.", suffix=".tmp"
        )
        tmp = Path(name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(document.content)
            tmp.replace(target)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
        log.debug("storage.saved", access_key=document.access_key, path=str(target))
        return target
