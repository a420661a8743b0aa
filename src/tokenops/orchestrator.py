"""Per-operation coordination: validate, resolve signers, build, sign, submit."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Protocol

from stellar_sdk import Keypair

from tokenops.api.client import LedgerServiceClient
from tokenops.api.status import (
    ACTIVATE_STATUS,
    EXPRESS_TRANSFER_STATUS,
    GO_LIVE_STATUS,
    MINT_STATUS,
    REGISTER_STATUS,
    TRANSFER_STATUS,
    TRUST_STATUS,
    StatusTable,
    interpret_status,
)
from tokenops.config import TokenOpsConfig
from tokenops.content_store import ContentStore
from tokenops.crypto import encrypt, sha256_hex
from tokenops.errors import (
    AccountNotRegisteredError,
    ApprovalDeclinedError,
    ConfigurationError,
    InvalidInputError,
    RemoteBuildFailedError,
    TokenNotFoundError,
)
from tokenops.identifier import coerce_kind, derive_identifier
from tokenops.ledger.accounts import AssetBalance, HorizonAccountReader
from tokenops.ledger.signer import EnvelopeSigner, SignedEnvelope
from tokenops.models import (
    ActivateRequest,
    BuilderResponse,
    EnvelopeRecord,
    MintedToken,
    MintOptions,
    MintRequest,
    RegisteredAccount,
    RegisterRequest,
    RegistrationResult,
    SignerEntry,
    SignerStatus,
    TokenCategory,
    TokenRecord,
    TransferRecord,
    TransferRequest,
    TrustRecord,
    TrustRequest,
)
from tokenops.validation import (
    is_secret_key,
    load_keypair,
    require_identifier,
    require_non_empty,
    require_public_key,
    require_secret_key,
)

__all__ = ["ApprovalRequester", "OperationOrchestrator"]

LOGGER = logging.getLogger(__name__)


class ApprovalRequester(Protocol):
    async def request_approval(
        self, context: Mapping[str, str] | None = None
    ) -> str | None: ...


class OperationOrchestrator:
    """Run mint, transfer, express-transfer, trust, register and activate.

    Every operation validates its inputs before the first network call,
    resolves the subject keypair, obtains unsigned envelopes from the builder,
    signs them and submits the primary envelope. Envelopes of one operation
    are signed concurrently and the first failure cancels the rest; each
    envelope is signed by the subject first and then by the merchant when the
    two keys differ. Balance and holdings reads go to the ledger endpoints.

    Args:
        config: Session configuration holding the merchant keypair.
        service: Registry, builder and ledger-operations collaborator.
        signer: Envelope signer with the network fallback.
        broker: Source of delegated signing credentials.
        content_store: Store for token payloads.
        accounts: Ledger account reader used for balances and holdings.
    """

    def __init__(
        self,
        config: TokenOpsConfig,
        service: LedgerServiceClient,
        signer: EnvelopeSigner,
        broker: ApprovalRequester,
        content_store: ContentStore,
        accounts: HorizonAccountReader,
    ) -> None:
        self._config = config
        self._service = service
        self._signer = signer
        self._broker = broker
        self._content_store = content_store
        self._accounts = accounts

    @property
    def config(self) -> TokenOpsConfig:
        return self._config

    @property
    def _merchant(self) -> Keypair:
        return self._config.merchant_keypair

    # Mint

    async def mint(
        self,
        category: TokenCategory | str,
        request: MintRequest,
        options: MintOptions | None = None,
    ) -> MintedToken:
        """Mint a token of ``category`` issued by the creator's sub-account.

        Returns:
            The token document accepted by the ledger service, with the
            transaction hash of the signed primary envelope.

        Raises:
            InvalidInputError: Malformed inputs, checked before any network call.
            ApprovalDeclinedError: The creator declined delegated approval.
            AccountNotRegisteredError: Creator or project unknown to the registry.
            RemoteBuildFailedError: The builder produced no envelopes.
            StatusCodeError: The submit status was not a success.
        """

        try:
            category = TokenCategory(category)
        except ValueError as exc:
            raise InvalidInputError(
                f"Unsupported token category: {category!r}"
            ) from exc
        options = options or MintOptions()

        require_non_empty(request.token_name, "token name")
        require_non_empty(request.token_data, "token data")
        _require_positive(request.token_count, "token count")
        require_public_key(request.creator_public_key, "creator")
        require_secret_key(request.creator_secret_key, "creator")
        token_kind = coerce_kind(request.token_kind)
        data_hash = sha256_hex(request.token_data)
        identifier = derive_identifier(
            token_kind,
            options.tradable,
            options.transferable,
            options.authorizable,
            request.token_name,
            data_hash,
            payload_is_digest=True,
        )

        creator = await self._resolve_subject(
            "creator", request.creator_public_key, request.creator_secret_key
        )
        account = await self._require_account(creator.public_key, "Creator")
        issuer, issuer_alias = await self._issuer_for(
            category, account, options.tradable
        )

        stored = await self._content_store.add(
            request.token_data,
            encryption_key=creator.secret if options.encrypt_data else None,
        )

        built = await self._service.build_mint(
            category,
            {
                "tokenName": request.token_name,
                "tokenType": token_kind.value,
                "tradable": options.tradable,
                "transferable": options.transferable,
                "authorizable": options.authorizable,
                "primaryPublicKey": creator.public_key,
                "merchantPublicKey": self._config.project_key,
                "assetCount": request.token_count,
                "dataHash": data_hash,
            },
        )
        _raise_for_build_code(built, MINT_STATUS)
        signed = await self._sign_all(built.data, creator)
        primary = signed[0]

        token = MintedToken(
            token_name=request.token_name,
            token_type=token_kind.value,
            tradable=options.tradable,
            transferable=options.transferable,
            category=category,
            asset_code=built.meta_data.niftron_id or identifier.id,
            asset_issuer=issuer,
            issuer_alias=issuer_alias,
            asset_count=request.token_count,
            preview_url=request.preview_image_base64 or request.preview_image_url,
            is_url=request.preview_image_base64 is None,
            ipfs_hash=stored.content_id,
            price=request.token_cost,
            xdr=primary.xdr,
        )
        status = await self._service.submit_mint(category, token.to_wire())
        self._log_outcome("mint", status, creator.public_key)
        accepted = interpret_status(status, MINT_STATUS, token).unwrap()
        return accepted.model_copy(update={"txn_hash": primary.transaction_hash()})

    async def mint_certificate(
        self, request: MintRequest, options: MintOptions | None = None
    ) -> MintedToken:
        return await self.mint(TokenCategory.CERTIFICATE, request, options)

    async def mint_badge(
        self, request: MintRequest, options: MintOptions | None = None
    ) -> MintedToken:
        return await self.mint(TokenCategory.BADGE, request, options)

    async def mint_gift_card(
        self, request: MintRequest, options: MintOptions | None = None
    ) -> MintedToken:
        return await self.mint(TokenCategory.GIFTCARD, request, options)

    # Transfers

    async def transfer(self, request: TransferRequest) -> TransferRecord:
        """Transfer a token; the builder's second envelope is the reject path."""

        _validate_transfer(request)
        sender = await self._resolve_subject(
            "sender", request.sender_public_key, request.sender_secret_key
        )
        await self._require_account(sender.public_key, "Sender")
        token = await self._service.get_token(request.asset_code)
        if token is None:
            raise TokenNotFoundError(f"Token {request.asset_code} not found")

        built = await self._service.build_transfer(
            self._transfer_body(request, sender.public_key)
        )
        _raise_for_build_code(built, TRANSFER_STATUS)
        signed = await self._sign_all(built.data, sender)
        primary = signed[0]

        record = TransferRecord(
            sender=sender.public_key,
            receiver=request.receiver_public_key,
            asset_code=request.asset_code,
            asset_issuer=request.asset_issuer,
            asset_count=request.asset_count,
            token_name=token.token_name,
            preview_url=token.preview_url,
            xdr=primary.xdr,
            reject_xdr=signed[1].xdr if len(signed) > 1 else None,
            signers=[
                SignerEntry(public_key=sender.public_key, status=SignerStatus.ACCEPTED)
            ],
        )
        status = await self._service.submit_transfer(record.to_wire())
        self._log_outcome("transfer", status, sender.public_key)
        accepted = interpret_status(status, TRANSFER_STATUS, record).unwrap()
        return accepted.model_copy(update={"txn_hash": primary.transaction_hash()})

    async def express_transfer(self, request: TransferRequest) -> TransferRecord:
        """Transfer a token in a single step without a reject envelope."""

        _validate_transfer(request)
        sender = await self._resolve_subject(
            "sender", request.sender_public_key, request.sender_secret_key
        )
        await self._require_account(sender.public_key, "Sender")

        built = await self._service.build_express_transfer(
            self._transfer_body(request, sender.public_key)
        )
        _raise_for_build_code(built, EXPRESS_TRANSFER_STATUS)
        signed = await self._sign_all(built.data, sender)
        primary = signed[0]

        record = TransferRecord(
            sender=sender.public_key,
            receiver=request.receiver_public_key,
            asset_code=request.asset_code,
            asset_issuer=request.asset_issuer,
            asset_count=request.asset_count,
            xdr=primary.xdr,
            txn_hash=primary.transaction_hash(),
        )
        status = await self._service.submit_express_transfer(record.to_wire())
        self._log_outcome("express_transfer", status, sender.public_key)
        return interpret_status(status, EXPRESS_TRANSFER_STATUS, record).unwrap()

    # Trust

    async def trust(self, request: TrustRequest) -> TrustRecord:
        require_non_empty(request.asset_code, "asset code")
        require_identifier(request.asset_code)
        require_non_empty(request.asset_issuer, "asset issuer")
        require_public_key(request.asset_issuer, "asset issuer")
        require_public_key(request.truster_public_key, "truster")
        require_secret_key(request.truster_secret_key, "truster")

        truster = await self._resolve_subject(
            "truster", request.truster_public_key, request.truster_secret_key
        )
        await self._require_account(truster.public_key, "Truster")

        built = await self._service.build_trust(
            {
                "truster": truster.public_key,
                "merchant": self._config.project_key,
                "assetIssuer": request.asset_issuer,
                "assetCode": request.asset_code,
            }
        )
        _raise_for_build_code(built, TRUST_STATUS)
        signed = await self._sign_all(built.data, truster)
        primary = signed[0]

        record = TrustRecord(
            asset_code=request.asset_code,
            asset_issuer=request.asset_issuer,
            xdr=primary.xdr,
        )
        status = await self._service.submit_trust(record.to_wire())
        self._log_outcome("trust", status, truster.public_key)
        accepted = interpret_status(status, TRUST_STATUS, record).unwrap()
        return accepted.model_copy(update={"txn_hash": primary.transaction_hash()})

    # Accounts

    async def register(self, request: RegisterRequest) -> RegistrationResult:
        """Register a user account, generating a keypair when none is supplied.

        The secret is stored encrypted with SHA-256 of the password and with
        SHA-256 of the lower-cased security answer. Register envelopes carry
        the new account as their only signer.
        """

        require_non_empty(request.alias, "alias")
        require_secret_key(request.secret_key, "user")
        keypair = (
            load_keypair(request.secret_key, "user")
            if request.secret_key is not None
            else Keypair.random()
        )

        encrypted_secret = (
            encrypt(keypair.secret, sha256_hex(request.password))
            if request.password
            else ""
        )
        encrypted_recovery_secret = (
            encrypt(keypair.secret, sha256_hex(request.security_answer.lower()))
            if request.security_answer
            else ""
        )

        built = await self._service.build_register(
            {
                "primaryPublicKey": keypair.public_key,
                "merchantPublicKey": self._config.project_key,
            }
        )
        _raise_for_build_code(built, REGISTER_STATUS)
        signed = await self._sign_all(built.data, keypair, co_sign=False)
        secondary = built.meta_data.secondary_public_key

        accounts = [{"publicKey": keypair.public_key, "accountType": "0"}]
        if secondary:
            accounts.append({"publicKey": secondary, "accountType": "1"})

        status = await self._service.submit_register(
            {
                "type": request.user_type.value,
                "alias": request.alias.lower(),
                "email": request.email.lower(),
                "publicKey": keypair.public_key,
                "encryptedSecret": encrypted_secret,
                "encryptedRecoverySecret": encrypted_recovery_secret,
                "recoveryQuestion": request.recovery_question,
                "authType": request.auth_type.value,
                "accounts": accounts,
                "xdrs": [
                    {**record.to_wire(), "xdr": envelope.xdr}
                    for record, envelope in zip(built.data, signed)
                ],
            }
        )
        self._log_outcome("register", status, keypair.public_key)
        result = RegistrationResult(
            public_key=keypair.public_key,
            secret_key=keypair.secret,
            secondary_public_key=secondary,
        )
        return interpret_status(status, REGISTER_STATUS, result).unwrap()

    async def activate(self, request: ActivateRequest) -> RegisteredAccount:
        """Take a user account live and activate it.

        The go-live envelope is signed by the merchant and the activate
        envelope by the user; neither is co-signed.
        """

        require_non_empty(request.user_secret_key, "user secret key")
        user = load_keypair(request.user_secret_key, "user")
        account = await self._require_account(user.public_key, "User")
        body = {
            "userPublicKey": user.public_key,
            "merchantPublicKey": self._merchant.public_key,
        }

        go_live = await self._service.build_go_live(body)
        _raise_for_build_code(go_live, GO_LIVE_STATUS)
        signed_go_live = await self._signer.sign(go_live.data[0].xdr, self._merchant)
        status = await self._service.submit_go_live({**body, "xdr": signed_go_live.xdr})
        self._log_outcome("go_live", status, user.public_key)
        interpret_status(status, GO_LIVE_STATUS, None).unwrap()

        activation = await self._service.build_activate(body)
        _raise_for_build_code(activation, ACTIVATE_STATUS)
        signed_activation = await self._signer.sign(activation.data[0].xdr, user)
        status = await self._service.submit_activate(
            {**body, "xdr": signed_activation.xdr}
        )
        self._log_outcome("activate", status, user.public_key)
        return interpret_status(status, ACTIVATE_STATUS, account).unwrap()

    # Ledger reads

    async def native_balance(self, public_key: str | None = None) -> AssetBalance:
        """Return the native (XLM) balance of ``public_key`` or the merchant."""

        balances = await self._accounts.balances(self._read_target(public_key))
        for balance in balances:
            if balance.issuer is None:
                return balance
        raise TokenNotFoundError("Account holds no native balance")

    async def credit_balance(self, public_key: str | None = None) -> AssetBalance:
        """Return the platform credit balance of ``public_key`` or the merchant.

        Raises:
            ConfigurationError: The credit asset issuer is not configured.
            TokenNotFoundError: The account holds no credit trustline.
        """

        issuer = self._config.credit_asset_issuer
        if issuer is None:
            raise ConfigurationError("Please provide the credit asset issuer")
        code = self._config.credit_asset_code
        balances = await self._accounts.balances(self._read_target(public_key))
        for balance in balances:
            if balance.asset_code == code and balance.issuer == issuer:
                return balance
        raise TokenNotFoundError(f"Account holds no {code} balance")

    async def held_tokens(self, public_key: str | None = None) -> list[TokenRecord]:
        """Return registry records of the tokens held on the ledger.

        Only issued assets with a positive balance count. The platform credit
        asset is excluded when its issuer is configured.

        Raises:
            TokenNotFoundError: Nothing is held, or the registry knows none of
                the held assets.
        """

        target = self._read_target(public_key)
        credit_issuer = self._config.credit_asset_issuer
        held = [
            (balance.asset_code, balance.issuer)
            for balance in await self._accounts.balances(target)
            if balance.issuer is not None
            and balance.issuer != credit_issuer
            and balance.balance > 0
        ]
        if not held:
            raise TokenNotFoundError("Token not found on the ledger")
        records = await self._service.get_tokens(held)
        if not records:
            raise TokenNotFoundError("Token data not found in the registry")
        LOGGER.debug(
            "Resolved held tokens",
            extra={"public_key": target, "held": len(held), "records": len(records)},
        )
        return records

    def _read_target(self, public_key: str | None) -> str:
        if public_key is None:
            return self._merchant.public_key
        require_non_empty(public_key, "public key")
        require_public_key(public_key, "account")
        return public_key

    # Helpers

    async def _resolve_subject(
        self, role: str, public_key: str | None, secret_key: str | None
    ) -> Keypair:
        """Return the keypair whose authority the operation runs under.

        An explicit secret wins; a public key other than the merchant's goes
        through delegated approval; otherwise the merchant key is used.
        """

        if secret_key is not None:
            keypair = load_keypair(secret_key, role)
            if public_key is not None and keypair.public_key != public_key:
                raise InvalidInputError(
                    f"The {role} secret key does not match the {role} public key"
                )
            return keypair

        if public_key is None or public_key == self._merchant.public_key:
            return self._merchant

        LOGGER.info(
            "Requesting delegated approval",
            extra={"role": role, "public_key": public_key},
        )
        credential = await self._broker.request_approval({"publicKey": public_key})
        if credential is None:
            raise ApprovalDeclinedError(
                f"{role.capitalize()} account did not approve the transaction"
            )
        if not is_secret_key(credential):
            raise InvalidInputError("Approved credential is not a secret key")
        keypair = load_keypair(credential, role)
        if keypair.public_key != public_key:
            raise InvalidInputError(
                f"Approved credential does not belong to the {role} account"
            )
        return keypair

    async def _require_account(self, public_key: str, role: str) -> RegisteredAccount:
        account = await self._service.get_account(public_key)
        if account is None:
            raise AccountNotRegisteredError(
                f"{role} account {public_key} is not registered"
            )
        return account

    async def _issuer_for(
        self, category: TokenCategory, account: RegisteredAccount, tradable: bool
    ) -> tuple[str, str]:
        if category is not TokenCategory.BADGE:
            return account.issuer_for(tradable), account.alias
        if self._config.project_issuer is not None:
            return self._config.project_issuer, account.alias
        project = await self._service.get_project(self._config.project_key)
        if project is None:
            raise AccountNotRegisteredError(
                f"Project {self._config.project_key} is not registered"
            )
        return project.project_issuer.public_key, project.name

    async def _sign_all(
        self,
        envelopes: Sequence[EnvelopeRecord],
        subject: Keypair,
        *,
        co_sign: bool = True,
    ) -> list[SignedEnvelope]:
        keypairs = [subject]
        if co_sign and subject.public_key != self._merchant.public_key:
            keypairs.append(self._merchant)
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(self._signer.sign_with(record.xdr, keypairs))
                    for record in envelopes
                ]
        except ExceptionGroup as failures:
            raise failures.exceptions[0]
        return [task.result() for task in tasks]

    def _transfer_body(
        self, request: TransferRequest, sender: str
    ) -> dict[str, object]:
        return {
            "sender": sender,
            "receiver": request.receiver_public_key,
            "merchant": self._config.project_key,
            "assetIssuer": request.asset_issuer,
            "assetCode": request.asset_code,
            "assetCount": request.asset_count,
        }

    def _log_outcome(self, operation: str, status: int | None, public_key: str) -> None:
        LOGGER.info(
            "Operation submitted",
            extra={
                "operation": operation,
                "status_code": status,
                "public_key": public_key,
            },
        )


def _require_positive(value: object, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError(f"{label} must be a positive integer")


def _validate_transfer(request: TransferRequest) -> None:
    require_non_empty(request.receiver_public_key, "receiver public key")
    require_public_key(request.receiver_public_key, "receiver")
    require_non_empty(request.asset_code, "asset code")
    require_identifier(request.asset_code)
    require_non_empty(request.asset_issuer, "asset issuer")
    require_public_key(request.asset_issuer, "asset issuer")
    _require_positive(request.asset_count, "asset count")
    require_public_key(request.sender_public_key, "sender")
    require_secret_key(request.sender_secret_key, "sender")


def _raise_for_build_code(built: BuilderResponse, table: StatusTable) -> None:
    """Raise when the builder reported a non-success code instead of envelopes."""

    if built.code in (None, 200):
        return
    if built.code in table.messages:
        raise table.error_for(built.code)
    raise RemoteBuildFailedError(
        f"Envelope builder failed for {table.operation} (code {built.code})"
    )
