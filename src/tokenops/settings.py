"""Environment-backed settings primitives for :mod:`tokenops`."""

from __future__ import annotations

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "DEFAULT_APPROVAL_POLL_INTERVAL",
    "DEFAULT_APPROVAL_TIMEOUT",
    "DEFAULT_CREDIT_ASSET_CODE",
    "DEFAULT_HTTP_TIMEOUT",
    "TokenOpsSettings",
    "get_settings",
]

DEFAULT_HTTP_TIMEOUT = 15.0
DEFAULT_APPROVAL_POLL_INTERVAL = 0.5
DEFAULT_APPROVAL_TIMEOUT = 600.0
DEFAULT_CREDIT_ASSET_CODE = "NIFTRON"


class TokenOpsSettings(BaseSettings):
    """Expose environment-derived configuration knobs for tokenops.

    All environment lookups are centralised here; the rest of the package
    receives an explicit :class:`tokenops.config.TokenOpsConfig` instead.

    Attributes:
        secret_key: Merchant secret key used to co-sign every operation.
        project_key: Public key identifying the integrating project.
        project_issuer: Optional public key of the project's issuing account.
        api_url: Base URL of the envelope builder / ledger-operations service.
        content_store_url: Base URL of the content-addressed store API.
        authorization_url: Authorization surface used for delegated approval.
        horizon_url: Production ledger endpoint.
        horizon_test_url: Test ledger endpoint.
        credit_asset_code: Code of the platform credit asset.
        credit_asset_issuer: Issuer of the platform credit asset. Credit
            balance reads need it; nothing else does.
        http_timeout: Timeout in seconds applied to the shared HTTP client.
        approval_poll_interval: Seconds between approval window checks.
        approval_timeout: Seconds after which an unanswered approval window
            is treated as closed.
    """

    secret_key: str | None = Field(default=None, alias="TOKENOPS_SECRET_KEY")
    project_key: str | None = Field(default=None, alias="TOKENOPS_PROJECT_KEY")
    project_issuer: str | None = Field(default=None, alias="TOKENOPS_PROJECT_ISSUER")
    api_url: str | None = Field(default=None, alias="TOKENOPS_API_URL")
    content_store_url: str = Field(
        default="https://ipfs.infura.io:5001/api/v0",
        alias="TOKENOPS_CONTENT_STORE_URL",
    )
    authorization_url: str = Field(
        default="https://account.niftron.com/", alias="TOKENOPS_AUTHORIZATION_URL"
    )
    horizon_url: str = Field(
        default="https://horizon.stellar.org", alias="TOKENOPS_HORIZON_URL"
    )
    horizon_test_url: str = Field(
        default="https://horizon-testnet.stellar.org",
        alias="TOKENOPS_HORIZON_TEST_URL",
    )
    credit_asset_code: str = Field(
        default=DEFAULT_CREDIT_ASSET_CODE, alias="TOKENOPS_CREDIT_ASSET_CODE"
    )
    credit_asset_issuer: str | None = Field(
        default=None, alias="TOKENOPS_CREDIT_ASSET_ISSUER"
    )
    http_timeout: float = Field(
        default=DEFAULT_HTTP_TIMEOUT, alias="TOKENOPS_HTTP_TIMEOUT"
    )
    approval_poll_interval: float = Field(
        default=DEFAULT_APPROVAL_POLL_INTERVAL,
        alias="TOKENOPS_APPROVAL_POLL_INTERVAL",
    )
    approval_timeout: float = Field(
        default=DEFAULT_APPROVAL_TIMEOUT, alias="TOKENOPS_APPROVAL_TIMEOUT"
    )

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @field_validator(
        "http_timeout",
        "approval_poll_interval",
        "approval_timeout",
        mode="before",
    )
    @classmethod
    def _parse_positive_float(cls, value: object, info: ValidationInfo) -> float:
        """Parse float fields, reverting to the default on malformed input.

        Args:
            value: Raw environment value.
            info: Validation context carrying the field name.

        Returns:
            Parsed positive float, or the field default.
        """

        field_name = info.field_name or ""
        default = cls.model_fields[field_name].default
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            parsed = float(value)
        elif isinstance(value, str):
            try:
                parsed = float(value.strip())
            except ValueError:
                return float(default)
        else:
            return float(default)
        return parsed if parsed > 0 else float(default)

    @field_validator(
        "secret_key",
        "project_key",
        "project_issuer",
        "api_url",
        "credit_asset_issuer",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: object) -> str | None:
        """Treat empty environment values as unset."""

        if value is None:
            return None
        text = str(value).strip()
        return text or None


def get_settings() -> TokenOpsSettings:
    """Return a :class:`TokenOpsSettings` instance.

    Returns:
        Settings parsed from environment variables.
    """

    return TokenOpsSettings()
