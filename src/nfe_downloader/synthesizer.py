"""
Document synthesizer — renders an nfeProc XML document from a decoded key.

The document is built locally from the key fields, the region codes and the
run environment; nothing is fetched from the tax authority. Output is
deterministic for a given `now`: two renders with the same inputs are
byte-identical, and renders at different moments differ only in the
timestamp-derived fields (dhEmi, dhRecbto, nProt and the processing comment).
"""

from __future__ import annotations

from datetime import datetime

import jinja2

from nfe_downloader.domain.models import (
    DecodedKey,
    Environment,
    RegionInfo,
    SynthesizedDocument,
)

TEMPLATE_NAME = "nfe_proc.xml.j2"
PROTOCOL_PREFIX = "135"


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 to the second with a ±HH:MM offset, e.g. 2024-01-31T10:15:00-03:00."""
    return _as_aware(moment).isoformat(timespec="seconds")


def protocol_number(moment: datetime) -> str:
    return PROTOCOL_PREFIX + _as_aware(moment).strftime("%Y%m%d%H%M%S")


def _as_aware(moment: datetime) -> datetime:
    # naive values are taken as local time
    if moment.tzinfo is None:
        return moment.astimezone()
    return moment


def _create_environment() -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.PackageLoader("nfe_downloader", "templates"),
        autoescape=True,
        undefined=jinja2.StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


class DocumentSynthesizer:
    """Compose SynthesizedDocument values from decoded access keys."""

    def __init__(self, template_env: jinja2.Environment | None = None) -> None:
        self._template = (template_env or _create_environment()).get_template(TEMPLATE_NAME)

    def synthesize(
        self,
        decoded: DecodedKey,
        region: RegionInfo,
        environment: Environment,
        now: datetime,
    ) -> SynthesizedDocument:
        moment = _as_aware(now)
        rendered = self._template.render(
            key=decoded,
            region=region,
            run_environment=environment,
            emitted_at=format_timestamp(moment),
            received_at=format_timestamp(moment),
            processed_at=moment.strftime("%Y-%m-%d %H:%M:%S"),
            protocol=protocol_number(moment),
            application_version=f"{region.abbreviation}_NFE_PL_008_V4",
        )
        return SynthesizedDocument(
            access_key=decoded.raw,
            content=(rendered + "\n").encode("utf-8"),
        )
