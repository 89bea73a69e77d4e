"""
Per-key pipeline — one access key through the full railway.

  decode(raw)
    → enrich(decoded) with the run's region codes
      → synthesize(decoded, region, environment, now)
        → store.save(document)

Each stage returns Result[T]; a failing stage short-circuits the rest.
process_key is the failure boundary of a key: it always returns a Result,
whatever the stages raise, and every failure message names the key.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from railway import ErrorCode
from railway.result import Result

from nfe_downloader.domain.access_key import AccessKeyCodec
from nfe_downloader.domain.models import (
    DecodedKey,
    Environment,
    RegionInfo,
    SynthesizedDocument,
)
from nfe_downloader.domain.ports import Clock, DocumentStore
from nfe_downloader.domain.regions import codes_for
from nfe_downloader.synthesizer import DocumentSynthesizer


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _enrich(uf: str, region_lookup: Callable[[str], RegionInfo]) -> Result[RegionInfo]:
    return Result.from_computation(
        # codes may come from the fallback region, the unit printed stays the configured one
        lambda: replace(region_lookup(uf), abbreviation=uf),
        ErrorCode.TECHNICAL_ERROR,
        f"Failed to resolve region codes for {uf!r}",
    )


def _synthesize(
    synthesizer: DocumentSynthesizer,
    decoded: DecodedKey,
    region: RegionInfo,
    environment: Environment,
    clock: Clock,
) -> Result[SynthesizedDocument]:
    return Result.from_computation(
        lambda: synthesizer.synthesize(decoded, region, environment, clock()),
        ErrorCode.TECHNICAL_ERROR,
        "Failed to render document",
    )


def process_key(
    raw: str,
    *,
    codec: AccessKeyCodec,
    uf: str,
    environment: Environment,
    synthesizer: DocumentSynthesizer,
    store: DocumentStore,
    region_lookup: Callable[[str], RegionInfo] = codes_for,
    clock: Clock = _local_now,
) -> Result[Path]:
    """
    Decode, enrich, synthesize and persist a single key.

    Returns Result[Path] with the stored artifact location, or the first
    failure with the key prefixed to its message.
    """
    try:
        result = (
            codec.decode(raw)
            .flat_map(
                lambda decoded: _enrich(uf, region_lookup).flat_map(
                    lambda region: _synthesize(
                        synthesizer, decoded, region, environment, clock
                    )
                )
            )
            .flat_map(store.save)
        )
    except Exception as e:
        result = Result.failure(ErrorCode.TECHNICAL_ERROR, f"Unexpected error: {e}", e)
    return result.map_failure(lambda err: err.with_context(raw))
