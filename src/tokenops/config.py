"""Session configuration shared by every tokenops component."""

from __future__ import annotations

from dataclasses import dataclass, field

from stellar_sdk import Keypair

from tokenops.errors import ConfigurationError
from tokenops.ledger.networks import LedgerNetwork, default_networks
from tokenops.settings import (
    DEFAULT_APPROVAL_POLL_INTERVAL,
    DEFAULT_APPROVAL_TIMEOUT,
    DEFAULT_CREDIT_ASSET_CODE,
    DEFAULT_HTTP_TIMEOUT,
    TokenOpsSettings,
    get_settings,
)
from tokenops.validation import load_keypair, require_public_key

__all__ = ["Endpoints", "TokenOpsConfig"]

DEFAULT_CONTENT_STORE_URL = "https://ipfs.infura.io:5001/api/v0"
DEFAULT_AUTHORIZATION_URL = "https://account.niftron.com/"


@dataclass(frozen=True, slots=True)
class Endpoints:
    """Remote collaborators used by a session."""

    api_url: str
    content_store_url: str = DEFAULT_CONTENT_STORE_URL
    authorization_url: str = DEFAULT_AUTHORIZATION_URL
    networks: tuple[LedgerNetwork, ...] = field(default_factory=default_networks)


@dataclass(frozen=True, slots=True)
class TokenOpsConfig:
    """Immutable configuration built once and passed to each component.

    Build the configuration before starting any operation. Replacing it while
    operations are in flight is unsupported.

    Attributes:
        merchant_keypair: Long-lived keypair of the integrating application.
        project_key: Public identifier of the project, sent to the builder and
            to the authorization surface.
        endpoints: Remote service locations.
        project_issuer: Optional issuing account of the project.
        http_timeout: Timeout applied to the shared HTTP client.
        approval_poll_interval: Seconds between approval window checks.
        approval_timeout: Seconds before an unanswered approval is abandoned.
        credit_asset_code: Code of the platform credit asset.
        credit_asset_issuer: Issuer of the platform credit asset, if known.
    """

    merchant_keypair: Keypair
    project_key: str
    endpoints: Endpoints
    project_issuer: str | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    approval_poll_interval: float = DEFAULT_APPROVAL_POLL_INTERVAL
    approval_timeout: float = DEFAULT_APPROVAL_TIMEOUT
    credit_asset_code: str = DEFAULT_CREDIT_ASSET_CODE
    credit_asset_issuer: str | None = None

    @property
    def merchant_public_key(self) -> str:
        return self.merchant_keypair.public_key

    @classmethod
    def create(
        cls,
        secret_key: str | None,
        project_key: str | None,
        api_url: str | None,
        *,
        project_issuer: str | None = None,
        content_store_url: str | None = None,
        authorization_url: str | None = None,
        networks: tuple[LedgerNetwork, ...] | None = None,
        http_timeout: float = DEFAULT_HTTP_TIMEOUT,
        approval_poll_interval: float = DEFAULT_APPROVAL_POLL_INTERVAL,
        approval_timeout: float = DEFAULT_APPROVAL_TIMEOUT,
        credit_asset_code: str = DEFAULT_CREDIT_ASSET_CODE,
        credit_asset_issuer: str | None = None,
    ) -> TokenOpsConfig:
        """Validate raw values and build a configuration.

        Raises:
            ConfigurationError: If the secret key, project key or API URL is
                missing.
            InvalidInputError: If a key is malformed.
        """

        if secret_key is None:
            raise ConfigurationError("Please provide a secret key")
        if project_key is None:
            raise ConfigurationError("Please provide a project key")
        require_public_key(project_key, "project")
        require_public_key(project_issuer, "project issuer")
        require_public_key(credit_asset_issuer, "credit asset issuer")
        if not api_url:
            raise ConfigurationError("Please provide the ledger service API URL")

        endpoints = Endpoints(
            api_url=api_url.rstrip("/"),
            content_store_url=(content_store_url or DEFAULT_CONTENT_STORE_URL).rstrip("/"),
            authorization_url=authorization_url or DEFAULT_AUTHORIZATION_URL,
            networks=networks if networks is not None else default_networks(),
        )

        return cls(
            merchant_keypair=load_keypair(secret_key, "merchant"),
            project_key=project_key,
            endpoints=endpoints,
            project_issuer=project_issuer,
            http_timeout=http_timeout,
            approval_poll_interval=approval_poll_interval,
            approval_timeout=approval_timeout,
            credit_asset_code=credit_asset_code,
            credit_asset_issuer=credit_asset_issuer,
        )

    @classmethod
    def from_settings(cls, settings: TokenOpsSettings | None = None) -> TokenOpsConfig:
        """Build a configuration from environment settings.

        Args:
            settings: Optional pre-instantiated settings. When omitted
                :func:`tokenops.settings.get_settings` is used.
        """

        env = settings or get_settings()
        return cls.create(
            env.secret_key,
            env.project_key,
            env.api_url,
            project_issuer=env.project_issuer,
            content_store_url=env.content_store_url,
            authorization_url=env.authorization_url,
            networks=default_networks(env.horizon_url, env.horizon_test_url),
            http_timeout=env.http_timeout,
            approval_poll_interval=env.approval_poll_interval,
            approval_timeout=env.approval_timeout,
            credit_asset_code=env.credit_asset_code,
            credit_asset_issuer=env.credit_asset_issuer,
        )
