"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from environment variables
  - Fall back to .env file
  - Validate types and constraints at startup
  - Keep certificate passwords and PFX bytes out of logs (SecretStr)

Only AppSettings is a BaseSettings instance. CertificateSettings is a plain
BaseModel populated via env_nested_delimiter="__", so CERTIFICATE__REFERENCE
maps to certificate.reference, CERTIFICATE__PASSWORD to certificate.password.
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dfe_core.domain.models import CertificateSource

# Resolve the .env file relative to the project root (two levels above this file),
# so settings load correctly regardless of the working directory at runtime.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class CertificateSettings(BaseModel):
    """
    Where the signing certificate comes from.

    Sources, in resolution order:
      1. data      — base64 PKCS#12 container (CERTIFICATE__DATA)
      2. reference — path to a .pfx/.p12 file, or
      3. reference — serial number / subject looked up in the installed store

    The installed store is a PKCS#11 token when `pkcs11_library` is set,
    otherwise the `store_dir` directory, otherwise absent.
    """

    data: SecretStr | None = Field(
        default=None,
        description="Base64-encoded PKCS#12 container (takes priority over reference)",
    )
    reference: str = Field(default="", description="PKCS#12 file path, serial number or subject")
    password: SecretStr = Field(default=SecretStr(""), description="Container password or token PIN")
    store_dir: Path | None = Field(default=None, description="Directory of installed certificates")
    pkcs11_library: str | None = Field(default=None, description="Path to the token's PKCS#11 module")
    token_label: str | None = Field(default=None, description="Token label when several are present")

    @field_validator("data")
    @classmethod
    def validate_base64(cls, value: SecretStr | None) -> SecretStr | None:
        """Reject CERTIFICATE__DATA that isn't valid base64."""
        if value is None or not value.get_secret_value().strip():
            return None
        try:
            base64.b64decode(value.get_secret_value(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"CERTIFICATE__DATA is not valid base64: {e}") from e
        return value

    @field_validator("store_dir")
    @classmethod
    def validate_store_dir(cls, value: Path | None) -> Path | None:
        if value is not None and not value.is_dir():
            raise ValueError(f"CERTIFICATE__STORE_DIR is not a directory: {value}")
        return value

    @model_validator(mode="after")
    def check_token_settings(self) -> CertificateSettings:
        """A token label only means something with a PKCS#11 module to load."""
        if self.token_label and not self.pkcs11_library:
            raise ValueError("CERTIFICATE__TOKEN_LABEL requires CERTIFICATE__PKCS11_LIBRARY")
        return self

    def get_data(self) -> bytes | None:
        if self.data is None:
            return None
        return base64.b64decode(self.data.get_secret_value())

    def to_source(self) -> CertificateSource:
        return CertificateSource(
            data=self.get_data(),
            reference=self.reference,
            password=self.password.get_secret_value(),
        )


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Environment variables
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    certificate: CertificateSettings = Field(default_factory=lambda: CertificateSettings())
    log_level: str = Field(default="INFO")
