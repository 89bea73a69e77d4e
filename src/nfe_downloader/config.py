"""
Configuration — typed, validated settings loaded from a JSON settings file
with environment variable fallback.

Uses pydantic-settings to:
  - Read appsettings.json (the file is required; a missing or malformed file
    is a fatal startup error)
  - Fill anything the file omits from NFE_* environment variables, so the
    certificate password can stay out of the file
  - Validate types and constraints before any work starts

Only AppSettings is a BaseSettings instance. Sub-settings are plain BaseModel
classes populated via env_nested_delimiter="__": NFE_CERTIFICATE__PASSWORD
maps to certificate.password, NFE_RUN__UF to run.uf, etc.

Keys in the settings file are case-insensitive, and the legacy Portuguese
layout (Certificado.Caminho/Senha, Configuracao.UF/Homologacao) is accepted
and mapped onto the English field names.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from railway import ErrorCode
from railway.result import Result

from nfe_downloader.domain.models import Environment

DEFAULT_SETTINGS_FILE = Path("appsettings.json")


class CertificateSettings(BaseModel):
    """Location and password of the PKCS#12 signing credential."""

    path: Path = Field(description="Path to the .pfx/.p12 bundle")
    password: SecretStr = Field(default=SecretStr(""), description="Bundle password")


class RunSettings(BaseModel):
    """Per-run document parameters."""

    uf: str = Field(
        default="SP",
        description="Federative unit abbreviation used for region codes",
    )
    homologation: bool = Field(
        default=False,
        description="True for the test (homologação) environment",
    )

    @field_validator("uf")
    @classmethod
    def normalize_uf(cls, value: str) -> str:
        """Upper-case and trim; unknown units resolve to the default region later."""
        return value.strip().upper()

    @property
    def environment(self) -> Environment:
        return Environment.from_flag(self.homologation)


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Values from the settings file (passed as init kwargs)
      2. NFE_* environment variables
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="NFE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    certificate: CertificateSettings
    run: RunSettings = Field(default_factory=lambda: RunSettings())

    keys_file: Path = Field(default=Path("chaves.txt"))
    output_dir: Path = Field(default=Path("xmls"))
    workers: int = Field(default=1, ge=1, le=64)
    verify_check_digit: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level {value!r}")
        return level


_LEGACY_SECTIONS = {"certificado": "certificate", "configuracao": "run"}
_LEGACY_FIELDS = {
    "caminho": "path",
    "senha": "password",
    "homologacao": "homologation",
}


def normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Lower-case keys and map the Portuguese layout onto field names."""
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        name = key.lower()
        name = _LEGACY_SECTIONS.get(name, name)
        if isinstance(value, dict):
            value = {
                _LEGACY_FIELDS.get(k.lower(), k.lower()): v for k, v in value.items()
            }
        normalized[name] = value
    return normalized


def _read_json(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8-sig"))
    if not isinstance(data, dict):
        raise ValueError("settings file must contain a JSON object")
    return normalize_keys(data)


def load_settings(path: Path = DEFAULT_SETTINGS_FILE) -> Result[AppSettings]:
    """
    Read and validate the settings file.

    Returns CONFIGURATION_ERROR when the file is missing, is not a JSON
    object, or fails validation.
    """
    if not path.is_file():
        return Result.failure(ErrorCode.CONFIGURATION_ERROR, f"Settings file not found: {path}")
    return Result.from_computation(
        lambda: _read_json(path),
        ErrorCode.CONFIGURATION_ERROR,
        f"Cannot parse settings file {path}",
    ).flat_map(
        lambda data: Result.from_computation(
            lambda: AppSettings(**data),
            ErrorCode.CONFIGURATION_ERROR,
            f"Invalid settings in {path}",
        )
    )
