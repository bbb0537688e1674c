"""
Homepage extraction
-------------------
Reads a repository list (filtrados.csv), looks up each repository's
homepage through the GitHub REST API and writes the ones that have one to
repositorios_com_homepage.csv, the input of main.py.

Tokens come from GITHUB_TOKENS (comma separated), TOKEN_1..TOKEN_3 or
GITHUB_TOKEN. Several tokens are rotated as their quota runs low.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

import httpx

from a11y_harness.application.homepage_service import HomepageExtractionService
from a11y_harness.domain.exceptions import InputSourceError
from a11y_harness.infrastructure.credential_pool import CredentialPool
from a11y_harness.infrastructure.csv_storage import CsvRepositorySource, write_homepages
from a11y_harness.infrastructure.github_client import GitHubClient

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger(__name__)

DEFAULT_INPUT  = "filtrados.csv"
DEFAULT_OUTPUT = "repositorios_com_homepage.csv"


def read_tokens(env: dict[str, str] | None = None) -> list[str]:
    env = os.environ if env is None else env
    joined = env.get("GITHUB_TOKENS", "")
    tokens = [t.strip() for t in joined.split(",") if t.strip()]
    tokens += [env[k] for k in ("TOKEN_1", "TOKEN_2", "TOKEN_3", "GITHUB_TOKEN") if env.get(k)]
    return list(dict.fromkeys(tokens))


async def build_and_run(input_path: str, output_path: str, tokens: list[str]) -> int:
    records = CsvRepositorySource(input_path, require_homepage=False).read()

    async with httpx.AsyncClient() as client:
        github  = GitHubClient(pool=CredentialPool(tokens), client=client)
        service = HomepageExtractionService(fetcher=github)
        found   = await service.execute(records)

    if not found:
        log.warning("No repository with a homepage found — %s not written", output_path)
        return 0

    write_homepages(output_path, found)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Extract GitHub repository homepages")
    parser.add_argument("--input", default=DEFAULT_INPUT, help=f"repository list (default: {DEFAULT_INPUT})")
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help=f"output CSV (default: {DEFAULT_OUTPUT})")
    args = parser.parse_args()

    tokens = read_tokens()
    if not tokens:
        log.error("No GitHub token configured — set GITHUB_TOKENS or TOKEN_1..TOKEN_3")
        sys.exit(1)
    log.info("Tokens configured: %d", len(tokens))

    try:
        sys.exit(asyncio.run(build_and_run(args.input, args.output, tokens)))
    except InputSourceError as exc:
        log.error("%s", exc)
        sys.exit(1)
