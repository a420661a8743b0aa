#!/usr/bin/env python3
"""
Mint and Transfer Example

This example demonstrates:
- Building a session configuration from TOKENOPS_* environment variables
- Deriving the identifier a certificate will be issued under
- Minting a certificate co-signed by the merchant key
- Transferring it to another account
- Reading the merchant's native balance afterwards
"""

import asyncio
import logging
import sys

from tokenops import TokenOpsConfig, TokenOpsError, derive_identifier, open_session
from tokenops.crypto import sha256_hex
from tokenops.logging_pipeline import configure_structured_logging, shutdown_listeners
from tokenops.models import MintOptions, MintRequest, TransferRequest


async def mint_and_transfer(receiver_public_key):
    """Mint a transferable certificate and hand it to ``receiver_public_key``."""
    config = TokenOpsConfig.from_settings()
    request = MintRequest(
        token_name="Course Completion",
        token_kind="NFT",
        token_data="Completed the ledger fundamentals course",
        token_count=1,
        preview_image_url="https://example.com/certificate.png",
    )
    options = MintOptions(transferable=True)

    identifier = derive_identifier(
        request.token_kind,
        options.tradable,
        options.transferable,
        options.authorizable,
        request.token_name,
        sha256_hex(request.token_data),
        payload_is_digest=True,
    )
    print(f"Local identifier: {identifier.id} (redeem {identifier.redeem_id})")

    async with open_session(config) as session:
        token = await session.mint_certificate(request, options)
        print(f"Minted {token.asset_code} issued by {token.asset_issuer}")
        print(f"  transaction: {token.txn_hash}")

        transfer = await session.transfer(
            TransferRequest(
                receiver_public_key=receiver_public_key,
                asset_code=token.asset_code,
                asset_issuer=token.asset_issuer,
                asset_count=1,
            )
        )
        print(f"Transferred to {transfer.receiver}")
        print(f"  transaction: {transfer.txn_hash}")

        balance = await session.native_balance()
        print(f"Merchant balance: {balance.balance} {balance.asset_code} ({balance.network})")


def main():
    if len(sys.argv) != 2:
        print("usage: mint_and_transfer.py RECEIVER_PUBLIC_KEY", file=sys.stderr)
        return 2

    listener = configure_structured_logging(logging.getLogger("tokenops"))
    try:
        asyncio.run(mint_and_transfer(sys.argv[1]))
    except TokenOpsError as exc:
        print(f"Operation failed: {exc}", file=sys.stderr)
        return 1
    finally:
        shutdown_listeners([listener])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
