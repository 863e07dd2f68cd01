"""CLI entrypoints for provider metadata operational tasks."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence

from pydantic import ValidationError

from app.config import get_settings
from oidc_cache.exceptions import DocumentFetchError
from oidc_cache.fetcher import HTTPDocumentFetcher
from oidc_cache.tenants import resolve_initial_tenants
from oidc_cache.uri import build_uri_builder


async def _run_fetch(uri: str, timeout_seconds: float) -> int:
    """Fetch one discovery document and its key set, then print a summary."""
    async with HTTPDocumentFetcher(timeout=timeout_seconds) as fetcher:
        try:
            documents = await fetcher.fetch(uri)
        except DocumentFetchError as exc:
            print(
                json.dumps(
                    {"uri": exc.uri, "error": exc.detail, "status_code": exc.status_code}
                )
            )
            return 1

    print(
        json.dumps(
            {
                "uri": uri,
                "issuer": documents.discovery_document.get("issuer"),
                "jwks_uri": documents.discovery_document.get("jwks_uri"),
                "kids": [key.kid for key in documents.jwk.keys],
                "remaining_lifetime": documents.remaining_lifetime,
            }
        )
    )
    return 0


def _run_check_config() -> int:
    """Validate settings and print the tenants and URIs each provider starts with."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        print(json.dumps({"valid": False, "errors": exc.errors(include_url=False)}, default=str))
        return 1

    openid_connect = settings.openid_connect
    providers = {}
    for provider, config in openid_connect.providers.items():
        uri_builder = build_uri_builder(config)
        tenants = resolve_initial_tenants(config.multi_tenant)
        providers[provider] = {
            "dynamic": config.multi_tenant.dynamic,
            "tenants": {tenant: uri_builder(tenant) for tenant in tenants},
        }
    print(
        json.dumps(
            {
                "valid": True,
                "enabled": openid_connect.enabled,
                "refresh_interval_ms": openid_connect.refresh_interval_ms,
                "providers": providers,
            }
        )
    )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build command-line parser for supported operational commands."""
    parser = argparse.ArgumentParser(prog="python -m app.cli")
    subcommands = parser.add_subparsers(dest="command", required=True)

    fetch_parser = subcommands.add_parser("fetch")
    fetch_parser.add_argument("uri", help="Discovery document URI to fetch.")
    fetch_parser.add_argument(
        "--timeout-seconds",
        type=float,
        default=None,
        help="Optional override for OPENID_CONNECT__FETCH_TIMEOUT_SECONDS during this run.",
    )

    subcommands.add_parser("check-config")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run CLI command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "fetch":
        timeout_seconds = (
            args.timeout_seconds
            if args.timeout_seconds is not None
            else get_settings().openid_connect.fetch_timeout_seconds
        )
        return asyncio.run(_run_fetch(args.uri, timeout_seconds))
    if args.command == "check-config":
        return _run_check_config()
    parser.error("Unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
