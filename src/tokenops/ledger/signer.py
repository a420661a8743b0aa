"""Network-aware envelope signing with a production-then-test fallback."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import httpx
from stellar_sdk import Keypair, TransactionEnvelope
from stellar_sdk.exceptions import SignatureExistError

from tokenops.errors import SigningFailedError
from tokenops.ledger.networks import LedgerNetwork, default_networks

__all__ = [
    "AccountLookupError",
    "EnvelopeSigner",
    "SignedEnvelope",
    "SigningAttempt",
]

LOGGER = logging.getLogger(__name__)


class AccountLookupError(RuntimeError):
    """Raised when a network does not know the signer's account."""


@dataclass(frozen=True, slots=True)
class SignedEnvelope:
    """Envelope after one or more signing passes.

    Attributes:
        xdr: Base64 serialised envelope.
        network: Network whose passphrase governed the last signing pass.
        signer_public_keys: Public keys applied by this toolkit, in order and
            without repeats.
    """

    xdr: str
    network: LedgerNetwork
    signer_public_keys: tuple[str, ...] = ()

    def transaction_hash(self) -> str:
        """Return the hex transaction hash under the signing network."""

        return TransactionEnvelope.from_xdr(self.xdr, self.network.passphrase).hash_hex()


@dataclass(frozen=True, slots=True)
class SigningAttempt:
    """Outcome of trying to sign an envelope on one network."""

    network: LedgerNetwork
    xdr: str | None = None
    error: Exception | None = None


class EnvelopeSigner:
    """Apply signatures to serialised envelopes.

    Networks are attempted in the configured order (production first). A
    network is used when the envelope parses under its passphrase and the
    signer's account resolves on its ledger endpoint.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        networks: Sequence[LedgerNetwork] | None = None,
    ) -> None:
        self._http = http_client
        self._networks: tuple[LedgerNetwork, ...] = tuple(
            networks if networks is not None else default_networks()
        )
        if not self._networks:
            raise ValueError("At least one ledger network is required")

    @property
    def networks(self) -> tuple[LedgerNetwork, ...]:
        return self._networks

    async def sign(
        self, envelope: str | SignedEnvelope, keypair: Keypair
    ) -> SignedEnvelope:
        """Sign ``envelope`` with ``keypair`` and return the new envelope.

        Args:
            envelope: Unsigned XDR, or the output of a previous pass.
            keypair: Keypair holding the secret to sign with.

        Returns:
            A new :class:`SignedEnvelope`; the input is left untouched. Signing
            with a key whose signature is already present leaves the envelope
            unchanged.

        Raises:
            SigningFailedError: If no network accepts the envelope. The error is
                chained from the last network's failure.
        """

        if isinstance(envelope, SignedEnvelope):
            source_xdr = envelope.xdr
            applied = envelope.signer_public_keys
        else:
            source_xdr = envelope
            applied = ()

        attempts: list[SigningAttempt] = []
        for network in self._networks:
            attempt = await self._attempt(network, source_xdr, keypair)
            attempts.append(attempt)
            if attempt.xdr is not None:
                return SignedEnvelope(
                    xdr=attempt.xdr,
                    network=network,
                    signer_public_keys=_with_key(applied, keypair.public_key),
                )
            LOGGER.info(
                "Envelope not signable on network",
                extra={
                    "network": network.name,
                    "public_key": keypair.public_key,
                    "error_type": type(attempt.error).__name__,
                },
            )

        tried = ", ".join(item.network.name for item in attempts)
        raise SigningFailedError(
            f"Envelope could not be signed on any network ({tried})"
        ) from attempts[-1].error

    async def sign_with(
        self, envelope: str | SignedEnvelope, keypairs: Iterable[Keypair]
    ) -> SignedEnvelope:
        """Apply ``keypairs`` sequentially, each pass consuming the last."""

        current: str | SignedEnvelope = envelope
        for keypair in keypairs:
            current = await self.sign(current, keypair)
        if not isinstance(current, SignedEnvelope):
            raise ValueError("At least one keypair is required")
        return current

    async def _attempt(
        self, network: LedgerNetwork, xdr: str, keypair: Keypair
    ) -> SigningAttempt:
        try:
            parsed = TransactionEnvelope.from_xdr(xdr, network.passphrase)
        except Exception as exc:  # malformed XDR surfaces as many decoder errors
            return SigningAttempt(network=network, error=exc)

        try:
            await self._load_account(network, keypair.public_key)
        except (AccountLookupError, httpx.HTTPError) as exc:
            return SigningAttempt(network=network, error=exc)

        try:
            parsed.sign(keypair)
        except SignatureExistError:
            LOGGER.debug(
                "Envelope already carries signature",
                extra={"network": network.name, "public_key": keypair.public_key},
            )
        return SigningAttempt(network=network, xdr=parsed.to_xdr())

    async def _load_account(self, network: LedgerNetwork, account_id: str) -> None:
        url = f"{network.horizon_url.rstrip('/')}/accounts/{account_id}"
        response = await self._http.get(url)
        if response.status_code != 200:
            raise AccountLookupError(
                f"Account {account_id} not found on {network.name} "
                f"(status {response.status_code})"
            )


def _with_key(applied: tuple[str, ...], public_key: str) -> tuple[str, ...]:
    return applied if public_key in applied else applied + (public_key,)
