"""
PKCS#12 credential adapter — loads an A1 certificate bundle (.pfx / .p12).

Adapter layer — implements the CredentialProvider port using:
  - cryptography (PyCA): PKCS#12 unwrapping and X.509 metadata
  - asn1crypto: decoding SubjectAlternativeName otherName values

ICP-Brasil certificates carry the holder's CNPJ under OID 2.16.76.1.3.3,
either as a subject attribute or as a SAN otherName. Missing CNPJ is not an
error; the field is left as None.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from asn1crypto import core
from cryptography import x509
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.extensions import ExtensionNotFound
from railway import ErrorCode
from railway.result import Result

from nfe_downloader.domain.models import CredentialHandle

log = structlog.get_logger()

CNPJ_OID = x509.ObjectIdentifier("2.16.76.1.3.3")


def _only_digits(text: str) -> str:
    return "".join(ch for ch in text if ch.isdigit())


def _cnpj_from_subject(cert: x509.Certificate) -> str | None:
    """Look for the CNPJ attribute in the subject, stripping punctuation."""
    for attr in cert.subject.get_attributes_for_oid(CNPJ_OID):
        value = attr.value if isinstance(attr.value, str) else attr.value.decode("ascii")
        digits = _only_digits(value)
        if digits:
            return digits
    return None


def _decode_other_name(der_value: bytes) -> str:
    """Decode the DER payload of an otherName into text."""
    native = core.load(der_value).native
    if isinstance(native, bytes):
        return native.decode("ascii", errors="ignore")
    return str(native)


def _cnpj_from_san(cert: x509.Certificate) -> str | None:
    """Look for an otherName with the CNPJ OID in SubjectAlternativeName."""
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except (ExtensionNotFound, ValueError):
        return None

    for other in ext.value.get_values_for_type(x509.OtherName):
        if other.type_id != CNPJ_OID:
            continue
        digits = _only_digits(_decode_other_name(other.value))
        if digits:
            return digits
    return None


def extract_cnpj(cert: x509.Certificate) -> str | None:
    """CNPJ of the certificate holder, or None if the certificate has none."""
    return _cnpj_from_subject(cert) or _cnpj_from_san(cert)


class Pkcs12CredentialProvider:
    """
    Load a PKCS#12 bundle from disk.

    Implements the CredentialProvider port. Exceptions raised by
    cryptography are captured here and returned as failures.
    """

    def load(self, path: Path, password: str) -> Result[CredentialHandle]:
        if not path.is_file():
            return Result.failure(
                ErrorCode.CONFIGURATION_ERROR,
                f"Certificate file not found: {path}",
            )

        log.info("credential.loading", path=str(path))
        return Result.from_computation(
            lambda: self._read_bundle(path, password),
            ErrorCode.AUTHENTICATION_ERROR,
            f"Failed to load certificate {path}",
        )

    def _read_bundle(self, path: Path, password: str) -> CredentialHandle:
        secret = password.encode("utf-8") if password else None
        private_key, cert, _chain = pkcs12.load_key_and_certificates(
            path.read_bytes(), secret
        )
        if cert is None:
            raise ValueError("bundle does not contain a certificate")

        return CredentialHandle(
            subject=cert.subject.rfc4514_string(),
            serial_number=hex(cert.serial_number),
            not_valid_before=cert.not_valid_before_utc,
            not_valid_after=cert.not_valid_after_utc,
            cnpj=extract_cnpj(cert),
            private_key=private_key,
        )
