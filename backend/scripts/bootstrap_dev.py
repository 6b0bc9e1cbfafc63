"""
Dev bootstrap script — create the api_keys table and one API key for
local development.

Usage:
    python -m scripts.bootstrap_dev
    python -m scripts.bootstrap_dev --name "Soccer Only" --sports soccer --rate-limit 200
    python -m scripts.bootstrap_dev --sports "*"

This will:
  1. Create the api_keys table if it does not exist
  2. Generate an API key with the given sports and rate limit
  3. Print the raw key ONCE (it is never stored)

The raw key is shown exactly once — copy it immediately.
"""

import argparse
import asyncio
import sys

# Ensure the backend root is on the path
sys.path.insert(0, ".")

from sports_api.auth.hashing import generate_api_key
from sports_api.auth.records import scope_from_stored
from sports_api.core.database import Base, async_session_factory, engine
from sports_api.models.api_key import ApiKey
from sports_api.routers.access import SPORTS


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a development API key.")
    parser.add_argument("--name", default="Dev Key", help="Human-readable key name")
    parser.add_argument(
        "--sports",
        default="*",
        help=f"Comma-separated sports ({','.join(SPORTS)}) or * for all",
    )
    parser.add_argument("--rate-limit", type=int, default=100, help="Requests per minute")
    args = parser.parse_args(argv)

    sports = [s.strip() for s in args.sports.split(",") if s.strip()]
    invalid = [s for s in sports if s != "*" and s not in SPORTS]
    if invalid:
        parser.error(f"invalid sport(s): {', '.join(invalid)}. Valid: {', '.join(SPORTS)}, *")
    if args.rate_limit <= 0:
        parser.error("--rate-limit must be positive")

    try:
        args.scope = scope_from_stored(sports)
    except ValueError as exc:
        parser.error(str(exc))
    return args


async def main(args: argparse.Namespace) -> None:
    # ── Create table ────────────────────────────────────────
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # ── Generate API key ────────────────────────────────────
    raw_key, key_hash, key_prefix = generate_api_key()

    async with async_session_factory() as session:
        api_key = ApiKey(
            key_hash=key_hash,
            key_prefix=key_prefix,
            name=args.name,
            sports=args.scope.to_stored(),
            rate_limit=args.rate_limit,
        )
        session.add(api_key)
        await session.commit()

    # ── Print results ───────────────────────────────────────
    print()
    print("=" * 60)
    print("  Dev Bootstrap Complete")
    print("=" * 60)
    print()
    print(f"  Key ID:     {api_key.id}")
    print(f"  Name:       {api_key.name}")
    print(f"  Sports:     {', '.join(api_key.sports)}")
    print(f"  Rate Limit: {api_key.rate_limit} req/min")
    print()
    print(f"  API Key:    {raw_key}")
    print()
    print("  ⚠  Copy this key now — it will NEVER be shown again.")
    print("=" * 60)
    print()

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main(parse_args()))
