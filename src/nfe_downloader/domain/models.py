"""
Domain models — immutable value objects for access keys, regions, credentials
and batch outcomes.

All models are frozen dataclasses or enums; nothing here performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, StrEnum
from pathlib import Path
from typing import Any

from railway.result import Result


class Environment(Enum):
    """
    SEFAZ processing environment (tpAmb).

    Each member carries the numeric flag written into documents and the
    label used in human-readable output.
    """

    PRODUCTION = ("1", "Produção")
    HOMOLOGATION = ("2", "Homologação")

    def __init__(self, code: str, label: str) -> None:
        self.code = code
        self.label = label

    @classmethod
    def from_flag(cls, homologation: bool) -> Environment:
        return cls.HOMOLOGATION if homologation else cls.PRODUCTION


@dataclass(frozen=True, slots=True)
class KeyField:
    """One fixed-position field of the access key layout."""

    name: str
    offset: int
    length: int
    charset: frozenset[str]

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True, slots=True)
class DecodedKey:
    """
    Read-only view of a 44-character access key split into its fields.

    Built only by the access key codec; `raw` is the key it came from.
    """

    raw: str
    uf_code: str
    year_month: str
    issuer_cnpj: str
    model: str
    series: str
    number: str
    emission_type: str
    numeric_code: str
    check_digit: str

    @property
    def year(self) -> int:
        return 2000 + int(self.year_month[:2])

    @property
    def month(self) -> int:
        return int(self.year_month[2:])

    @property
    def body(self) -> str:
        """The 43 characters covered by the check digit."""
        return self.raw[:-1]


@dataclass(frozen=True, slots=True)
class RegionInfo:
    """Numeric codes for a federative unit and its capital."""

    abbreviation: str
    region_code: str
    locality_code: str
    locality_name: str


@dataclass(frozen=True, slots=True)
class CredentialHandle:
    """
    A successfully loaded signing credential.

    `private_key` is the library object returned by the loader; it is kept
    opaque and out of repr.
    """

    subject: str
    serial_number: str
    not_valid_before: datetime
    not_valid_after: datetime
    cnpj: str | None = None
    private_key: Any = field(default=None, repr=False, compare=False)

    def is_valid_at(self, moment: datetime) -> bool:
        return self.not_valid_before <= moment <= self.not_valid_after


@dataclass(frozen=True, slots=True)
class SynthesizedDocument:
    """Rendered document bytes for one access key."""

    access_key: str
    content: bytes = field(repr=False)


@dataclass(frozen=True, slots=True)
class KeySelection:
    """
    Candidate keys read from the input list.

    `keys` keeps input order; `filtered` counts lines dropped for having the
    wrong length. Filtered lines are not errors.
    """

    keys: tuple[str, ...] = ()
    filtered: int = 0

    def __len__(self) -> int:
        return len(self.keys)


@dataclass(frozen=True, slots=True)
class KeyOutcome:
    """What happened to a single key."""

    access_key: str
    result: Result[Path]


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Aggregate counters of one batch run."""

    success_count: int = 0
    error_count: int = 0
    filtered_count: int = 0
    skipped_count: int = 0
    failures: tuple[tuple[str, str], ...] = ()

    @property
    def total(self) -> int:
        return self.success_count + self.error_count


class BatchState(StrEnum):
    NOT_STARTED = "not_started"
    CREDENTIAL_PENDING = "credential_pending"
    ABORTED = "aborted"
    RUNNING = "running"
    FINISHED = "finished"
