"""
Key file adapter — reads candidate access keys from a text file.

One candidate per line. Lines are trimmed; anything that is not exactly the
access key length (blank lines, headers, truncated keys) is dropped and only
counted. Dropped lines are not errors.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result

from nfe_downloader.domain.access_key import is_candidate
from nfe_downloader.domain.models import KeySelection

log = structlog.get_logger()


def select_keys(lines: list[str]) -> KeySelection:
    """Keep candidate lines in input order and count the rest."""
    trimmed = [line.strip() for line in lines]
    keys = tuple(line for line in trimmed if is_candidate(line))
    return KeySelection(keys=keys, filtered=len(trimmed) - len(keys))


class TextFileKeySource:
    """Implements the KeySource port over a UTF-8 text file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def read(self) -> Result[KeySelection]:
        return (
            Result.from_computation(
                lambda: self._path.read_text(encoding="utf-8-sig").splitlines(),
                ErrorCode.CONFIGURATION_ERROR,
                f"Cannot read access key list {self._path}",
            )
            .map(select_keys)
            .peek(
                lambda selection: log.info(
                    "keys.loaded",
                    path=str(self._path),
                    keys=len(selection),
                    filtered=selection.filtered,
                )
            )
        )
