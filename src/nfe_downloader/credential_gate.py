"""
Credential gate — the one check that must pass before any key is processed.

Every document of a run is bound to the same credential, so a credential
that cannot be loaded or is outside its validity window aborts the whole
run. There is no retry: a bad certificate or password is a configuration
problem, not a transient fault.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result

from nfe_downloader.domain.models import CredentialHandle
from nfe_downloader.domain.ports import Clock, CredentialProvider

log = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(UTC)


class CredentialGate:
    """Load a credential through the provider port and check it is usable now."""

    def __init__(
        self,
        provider: CredentialProvider,
        clock: Clock = _utc_now,
    ) -> None:
        self._provider = provider
        self._clock = clock

    def validate(self, path: Path, password: str) -> Result[CredentialHandle]:
        return (
            self._provider.load(path, password)
            .flat_map(self._check_validity)
            .peek(
                lambda handle: log.info(
                    "credential.loaded",
                    subject=handle.subject,
                    cnpj=handle.cnpj,
                    not_valid_after=handle.not_valid_after.isoformat(),
                )
            )
            .peek_failure(
                lambda err: log.error(
                    "credential.rejected", path=str(path), error=err.message
                )
            )
        )

    def _check_validity(self, handle: CredentialHandle) -> Result[CredentialHandle]:
        now = self._clock()
        if handle.is_valid_at(now):
            return Result.success(handle)
        return Result.failure(
            ErrorCode.AUTHENTICATION_ERROR,
            f"Certificate {handle.subject!r} is not valid at {now.isoformat()} "
            f"(valid {handle.not_valid_before.isoformat()} to "
            f"{handle.not_valid_after.isoformat()})",
        )
