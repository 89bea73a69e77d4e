"""
Access key codec — the 44-digit NF-e key as a declarative field schema.

Layout (offset, length):

    uf_code        (0, 2)    year_month   (2, 4)    issuer_cnpj   (6, 14)
    model          (20, 2)   series       (22, 3)   number        (25, 9)
    emission_type  (34, 1)   numeric_code (35, 8)   check_digit   (43, 1)

A single generic routine slices every field from ACCESS_KEY_SCHEMA and checks
it against the field's charset, so adding a rule means editing the schema,
not the decoder.
"""

from __future__ import annotations

import string

from railway import ErrorCode
from railway.result import Result

from nfe_downloader.domain.models import DecodedKey, KeyField

ACCESS_KEY_LENGTH = 44

_DIGITS = frozenset(string.digits)

ACCESS_KEY_SCHEMA: tuple[KeyField, ...] = (
    KeyField("uf_code", 0, 2, _DIGITS),
    KeyField("year_month", 2, 4, _DIGITS),
    KeyField("issuer_cnpj", 6, 14, _DIGITS),
    KeyField("model", 20, 2, _DIGITS),
    KeyField("series", 22, 3, _DIGITS),
    KeyField("number", 25, 9, _DIGITS),
    KeyField("emission_type", 34, 1, _DIGITS),
    KeyField("numeric_code", 35, 8, _DIGITS),
    KeyField("check_digit", 43, 1, _DIGITS),
)


def is_candidate(line: str) -> bool:
    """Input-list filter: only lines of exactly the key length are keys."""
    return len(line) == ACCESS_KEY_LENGTH


def compute_check_digit(body: str) -> str:
    """
    Modulo-11 check digit over the first 43 digits.

    Weights 2..9 cycle from the rightmost digit; a remainder of 0 or 1
    yields "0".
    """
    total = 0
    weight = 2
    for char in reversed(body):
        total += int(char) * weight
        weight = 2 if weight == 9 else weight + 1
    remainder = total % 11
    return "0" if remainder < 2 else str(11 - remainder)


class AccessKeyCodec:
    """
    Decode and re-encode access keys.

    With verify_check_digit=True the trailing digit must match the mod-11
    value computed from the rest of the key.
    """

    def __init__(
        self,
        schema: tuple[KeyField, ...] = ACCESS_KEY_SCHEMA,
        verify_check_digit: bool = False,
    ) -> None:
        self._schema = schema
        self._verify_check_digit = verify_check_digit

    def decode(self, raw: str) -> Result[DecodedKey]:
        """Split a raw key into named fields, rejecting bad length or characters."""
        return (
            Result.success(raw)
            .ensure(
                is_candidate,
                ErrorCode.VALIDATION_ERROR,
                f"Access key must have {ACCESS_KEY_LENGTH} characters, got {len(raw)}",
            )
            .flat_map(self._extract_fields)
            .map(lambda fields: DecodedKey(raw=raw, **fields))
            .flat_map(self._check_digit)
        )

    def encode(self, decoded: DecodedKey) -> str:
        """Rebuild the key from its fields, placing each at its offset."""
        chars = [""] * ACCESS_KEY_LENGTH
        for spec in self._schema:
            chars[spec.offset : spec.end] = getattr(decoded, spec.name)
        return "".join(chars)

    def _extract_fields(self, raw: str) -> Result[dict[str, str]]:
        fields: dict[str, str] = {}
        for spec in self._schema:
            value = raw[spec.offset : spec.end]
            invalid = set(value) - spec.charset
            if invalid:
                return Result.failure(
                    ErrorCode.VALIDATION_ERROR,
                    f"Field {spec.name!r} at offset {spec.offset} has invalid "
                    f"characters: {''.join(sorted(invalid))!r}",
                )
            fields[spec.name] = value
        return Result.success(fields)

    def _check_digit(self, decoded: DecodedKey) -> Result[DecodedKey]:
        if not self._verify_check_digit:
            return Result.success(decoded)
        expected = compute_check_digit(decoded.body)
        if decoded.check_digit != expected:
            return Result.failure(
                ErrorCode.VALIDATION_ERROR,
                f"Check digit mismatch: key has {decoded.check_digit}, expected {expected}",
            )
        return Result.success(decoded)
