"""
Region lookup — IBGE codes for each federative unit (UF) and its capital.

The table is built once at import and exposed read-only. Unknown
abbreviations resolve to DEFAULT_REGION instead of failing.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from nfe_downloader.domain.models import RegionInfo

_TABLE: tuple[tuple[str, str, str, str], ...] = (
    # UF, region code, capital locality code, capital name
    ("RO", "11", "1100205", "PORTO VELHO"),
    ("AC", "12", "1200401", "RIO BRANCO"),
    ("AM", "13", "1302603", "MANAUS"),
    ("RR", "14", "1400100", "BOA VISTA"),
    ("PA", "15", "1501402", "BELEM"),
    ("AP", "16", "1600303", "MACAPA"),
    ("TO", "17", "1721000", "PALMAS"),
    ("MA", "21", "2111300", "SAO LUIS"),
    ("PI", "22", "2211001", "TERESINA"),
    ("CE", "23", "2304400", "FORTALEZA"),
    ("RN", "24", "2408102", "NATAL"),
    ("PB", "25", "2507507", "JOAO PESSOA"),
    ("PE", "26", "2611606", "RECIFE"),
    ("AL", "27", "2704302", "MACEIO"),
    ("SE", "28", "2800308", "ARACAJU"),
    ("BA", "29", "2927408", "SALVADOR"),
    ("MG", "31", "3106200", "BELO HORIZONTE"),
    ("ES", "32", "3205309", "VITORIA"),
    ("RJ", "33", "3304557", "RIO DE JANEIRO"),
    ("SP", "35", "3550308", "SAO PAULO"),
    ("PR", "41", "4106902", "CURITIBA"),
    ("SC", "42", "4205407", "FLORIANOPOLIS"),
    ("RS", "43", "4314902", "PORTO ALEGRE"),
    ("MS", "50", "5002704", "CAMPO GRANDE"),
    ("MT", "51", "5103403", "CUIABA"),
    ("GO", "52", "5208707", "GOIANIA"),
    ("DF", "53", "5300108", "BRASILIA"),
)

REGIONS: Mapping[str, RegionInfo] = MappingProxyType(
    {uf: RegionInfo(uf, code, locality, name) for uf, code, locality, name in _TABLE}
)

DEFAULT_REGION: RegionInfo = REGIONS["SP"]


def codes_for(abbreviation: str) -> RegionInfo:
    """Case-insensitive lookup; anything unknown gets DEFAULT_REGION."""
    return REGIONS.get(abbreviation.strip().upper(), DEFAULT_REGION)
