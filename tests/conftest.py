"""
Shared test fixtures and helpers for the nfe-downloader test suite.

Provides sample access keys and throwaway PKCS#12 credentials generated with
cryptography, so no real certificate is ever needed.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from asn1crypto import core
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption,
    NoEncryption,
    pkcs12,
)
from cryptography.x509.oid import NameOID

# The documented sample key: SP, 2001-01, CNPJ 14200166000187, model 55,
# series 001, number 000000001, emission type 1, cNF 00000001, DV 2.
SAMPLE_KEY = "35200114200166000187550010000000011000000012"
SAMPLE_CNPJ = "14200166000187"
CNPJ_OID = x509.ObjectIdentifier("2.16.76.1.3.3")
CERT_PASSWORD = "s3cret"


def build_certificate(
    *,
    not_before: datetime | None = None,
    not_after: datetime | None = None,
    cnpj_in_san: str | None = SAMPLE_CNPJ,
    cnpj_in_subject: str | None = None,
) -> tuple[ec.EllipticCurvePrivateKey, x509.Certificate]:
    """Create a self-signed certificate shaped like an ICP-Brasil A1 certificate."""
    now = datetime.now(UTC)
    key = ec.generate_private_key(ec.SECP256R1())
    attributes = [
        x509.NameAttribute(NameOID.COUNTRY_NAME, "BR"),
        x509.NameAttribute(NameOID.COMMON_NAME, "EMPRESA EXEMPLO LTDA"),
    ]
    if cnpj_in_subject is not None:
        attributes.append(x509.NameAttribute(CNPJ_OID, cnpj_in_subject))
    name = x509.Name(attributes)

    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=365))
    )
    if cnpj_in_san is not None:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(
                [x509.OtherName(CNPJ_OID, core.OctetString(cnpj_in_san.encode()).dump())]
            ),
            critical=False,
        )
    return key, builder.sign(key, hashes.SHA256())


def write_pkcs12(
    path: Path,
    password: str = CERT_PASSWORD,
    **cert_kwargs: object,
) -> Path:
    """Serialize a fresh key + certificate into a .pfx file at `path`."""
    key, cert = build_certificate(**cert_kwargs)  # type: ignore[arg-type]
    encryption = BestAvailableEncryption(password.encode()) if password else NoEncryption()
    path.write_bytes(
        pkcs12.serialize_key_and_certificates(b"nfe-test", key, cert, None, encryption)
    )
    return path


@pytest.fixture()
def pfx_path(tmp_path: Path) -> Path:
    """A currently valid PKCS#12 bundle protected by CERT_PASSWORD."""
    return write_pkcs12(tmp_path / "certificado.pfx")


@pytest.fixture()
def workdir(tmp_path: Path, pfx_path: Path) -> Path:
    """
    A working directory laid out like a real installation:
    appsettings.json, chaves.txt and certificado.pfx side by side.
    """
    settings = {
        "certificate": {"path": str(pfx_path), "password": CERT_PASSWORD},
        "run": {"uf": "SP", "homologation": False},
        "keys_file": str(tmp_path / "chaves.txt"),
        "output_dir": str(tmp_path / "xmls"),
    }
    (tmp_path / "appsettings.json").write_text(json.dumps(settings), encoding="utf-8")
    (tmp_path / "chaves.txt").write_text(f"{SAMPLE_KEY}\nbad\n\n", encoding="utf-8")
    return tmp_path
