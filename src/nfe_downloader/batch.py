"""
Batch processor — runs the per-key pipeline over a key selection.

State machine:

  NOT_STARTED → CREDENTIAL_PENDING → ABORTED              (credential or prepare failed)
                                  → RUNNING → FINISHED    (credential and prepare ok)

The credential check runs exactly once and must succeed before any key is
touched. The optional prepare hook (creating the output directory) runs
only after it, so an aborted run leaves nothing on disk. After that every
key is processed independently: whatever happens to one key ends up as a
KeyOutcome and never reaches its siblings.

Outcomes are consumed in input order by a single collector (the thread
calling run), which is the only writer of the counters. With workers > 1
keys are processed on a bounded thread pool; the collector still reads
results in input order. A cancel_event set while running stops the keys
that have not started yet; the result is finalized with what ran.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result

from nfe_downloader.domain.models import (
    BatchResult,
    BatchState,
    CredentialHandle,
    KeyOutcome,
    KeySelection,
)

log = structlog.get_logger()


class BatchProcessor:
    """
    Drive one batch run.

    Args:
        credential_check: Zero-argument callable returning the credential
            Result (typically a partial over CredentialGate.validate).
        key_pipeline: Callable processing one raw key into Result[Path].
        workers: Pool size; 1 processes keys sequentially in the caller thread.
        cancel_event: Optional event checked before each key starts.
        prepare: Optional zero-argument callable run after the credential check
            and before the first key; a Failure aborts the run.
    """

    def __init__(
        self,
        credential_check: Callable[[], Result[CredentialHandle]],
        key_pipeline: Callable[[str], Result[Path]],
        workers: int = 1,
        cancel_event: threading.Event | None = None,
        prepare: Callable[[], Result[object]] | None = None,
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self._credential_check = credential_check
        self._key_pipeline = key_pipeline
        self._workers = workers
        self._cancel_event = cancel_event or threading.Event()
        self._prepare = prepare or (lambda: Result.success(None))
        self._state = BatchState.NOT_STARTED

    @property
    def state(self) -> BatchState:
        return self._state

    def run(self, selection: KeySelection) -> Result[BatchResult]:
        """
        Validate the credential, then process every key of the selection.

        Returns the credential or prepare Failure when the run is aborted
        (no key is processed and no BatchResult exists), otherwise
        Success(BatchResult).
        """
        if self._state is not BatchState.NOT_STARTED:
            raise RuntimeError(f"BatchProcessor already used (state={self._state})")

        self._state = BatchState.CREDENTIAL_PENDING
        credential = Result.from_computation(
            self._credential_check,
            ErrorCode.AUTHENTICATION_ERROR,
            "Credential check crashed",
        ).flat_map(lambda checked: checked)
        ready = credential.flat_map(lambda _: self._run_prepare())

        if ready.is_failure():
            self._state = BatchState.ABORTED
            log.error(
                "batch.aborted",
                reason=ready.error().message,
                pending_keys=len(selection),
            )
            return Result.failure_from(ready.error())

        self._state = BatchState.RUNNING
        log.info("batch.started", keys=len(selection), workers=self._workers)
        result = self._collect(self._outcomes(selection.keys), selection)
        self._state = BatchState.FINISHED

        log.info(
            "batch.summary",
            success=result.success_count,
            errors=result.error_count,
            filtered=result.filtered_count,
            skipped=result.skipped_count,
        )
        return Result.success(result)

    def _run_prepare(self) -> Result[object]:
        return Result.from_computation(
            self._prepare, ErrorCode.STORAGE_ERROR, "Batch preparation crashed"
        ).flat_map(lambda prepared: prepared)

    def _collect(
        self, outcomes: Iterable[KeyOutcome | None], selection: KeySelection
    ) -> BatchResult:
        success = 0
        failures: list[tuple[str, str]] = []
        skipped = 0

        for outcome in outcomes:
            if outcome is None:
                skipped += 1
                continue
            bound = log.bind(access_key=outcome.access_key)
            if outcome.result.is_success():
                success += 1
                bound.info("batch.key_processed", path=str(outcome.result.value()))
            else:
                failure = outcome.result.error()
                failures.append((outcome.access_key, failure.message))
                bound.error("batch.key_failed", code=failure.code.value, error=failure.message)

        if skipped:
            log.warning("batch.cancelled", skipped=skipped)

        return BatchResult(
            success_count=success,
            error_count=len(failures),
            filtered_count=selection.filtered,
            skipped_count=skipped,
            failures=tuple(failures),
        )

    def _outcomes(self, keys: tuple[str, ...]) -> Iterator[KeyOutcome | None]:
        if self._workers == 1:
            yield from map(self._process_one, keys)
            return
        with ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="nfe-batch"
        ) as pool:
            yield from pool.map(self._process_one, keys)

    def _process_one(self, access_key: str) -> KeyOutcome | None:
        """Failure boundary of a single key. None means it was never started."""
        if self._cancel_event.is_set():
            return None
        try:
            result = self._key_pipeline(access_key)
        except Exception as e:
            result = Result.failure(
                ErrorCode.TECHNICAL_ERROR, f"{access_key}: unexpected error: {e}", e
            )
        return KeyOutcome(access_key=access_key, result=result)
