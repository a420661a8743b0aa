"""Command-line utilities for tokenops."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import httpx

from tokenops.identifier import TokenKind, derive_identifier
from tokenops.ledger.networks import LedgerNetwork, default_networks
from tokenops.ledger.signer import EnvelopeSigner
from tokenops.logging_pipeline import configure_structured_logging, shutdown_listeners
from tokenops.settings import get_settings
from tokenops.validation import load_keypair


def _build_http_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout)


def _read_envelope(envelope: str | None, path: str | None) -> str:
    """Return the envelope from ``--envelope``, ``--input`` or stdin."""
    if envelope:
        return envelope.strip()
    if path:
        return Path(path).read_text(encoding="utf-8").strip()
    if sys.stdin and not sys.stdin.isatty():
        text = sys.stdin.read().strip()
        if text:
            return text
    raise ValueError("No envelope provided. Use --envelope, --input or pipe it via stdin.")


def _derive(args: argparse.Namespace) -> dict[str, object]:
    identifier = derive_identifier(
        args.kind,
        args.tradable,
        args.transferable,
        args.authorizable,
        args.name,
        args.payload,
        payload_is_digest=args.digest,
    )
    return identifier.to_dict()


async def _sign(
    xdr: str, secret_key: str, networks: tuple[LedgerNetwork, ...], timeout: float
) -> dict[str, object]:
    keypair = load_keypair(secret_key, "signer")
    async with _build_http_client(timeout) as client:
        signed = await EnvelopeSigner(client, networks).sign(xdr, keypair)
    return {
        "xdr": signed.xdr,
        "network": signed.network.name,
        "hash": signed.transaction_hash(),
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tokenops",
        description="Derive token identifiers and sign ledger envelopes.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit structured JSON logs on stderr.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    derive = subparsers.add_parser("derive-id", help="Derive an asset identifier.")
    derive.add_argument(
        "--kind",
        required=True,
        choices=[kind.value for kind in TokenKind],
        help="Token kind.",
    )
    derive.add_argument("--name", required=True, help="Token name.")
    derive.add_argument("--payload", required=True, help="Token payload.")
    derive.add_argument("--tradable", action="store_true")
    derive.add_argument("--transferable", action="store_true")
    derive.add_argument("--authorizable", action="store_true")
    derive.add_argument(
        "--digest",
        action="store_true",
        help="Treat --payload as an already computed digest.",
    )

    sign = subparsers.add_parser(
        "sign", help="Sign an envelope, trying production then test network."
    )
    sign.add_argument("--envelope", "-e", help="Base64 envelope XDR.")
    sign.add_argument("--input", "-i", help="File holding the envelope XDR.")
    sign.add_argument(
        "--secret-key",
        "-s",
        help="Signer secret key. Defaults to TOKENOPS_SECRET_KEY.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the tokenops command line."""
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:  # pragma: no cover - controlled via tests
        exit_code = int(exc.code) if isinstance(exc.code, int) else 1
        return 0 if exit_code == 0 else 1

    listeners = []
    if args.log_json:
        listeners.append(configure_structured_logging(logging.getLogger("tokenops")))

    try:
        if args.command == "derive-id":
            result = _derive(args)
        else:
            settings = get_settings()
            secret_key = args.secret_key or settings.secret_key
            if not secret_key:
                raise ValueError("Missing --secret-key and TOKENOPS_SECRET_KEY is not set.")
            xdr = _read_envelope(args.envelope, args.input)
            networks = default_networks(settings.horizon_url, settings.horizon_test_url)
            result = asyncio.run(_sign(xdr, secret_key, networks, settings.http_timeout))
        print(json.dumps(result, separators=(",", ":")))
        return 0
    except Exception as exc:
        print(str(exc), file=sys.stderr)
        return 1
    finally:
        shutdown_listeners(listeners)


if __name__ == "__main__":
    raise SystemExit(main())
