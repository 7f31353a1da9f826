import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from avatar_did.config import NetworkNamespace, Settings
from avatar_did.errors import DidError
from avatar_did.logging_config import setup_logging
from avatar_did.resolver import Resolver
from avatar_did.zilliqa_service import ZilliqaService

ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(ENV_PATH)

# Usage: python scripts/resolve_domain.py alice.ssi [mainnet|testnet|isolated]
if len(sys.argv) < 2:
    raise SystemExit("Usage: resolve_domain.py <avatar.suffix> [network]")

domain = sys.argv[1]
network = NetworkNamespace(sys.argv[2] if len(sys.argv) > 2 else os.getenv("ZIL_NETWORK", "testnet"))

settings = Settings()
setup_logging(
    level=settings.log_level,
    fmt=settings.log_format,
    log_file=settings.log_file or None,
)

init_address = settings.init_address(network)
if not init_address:
    raise RuntimeError(f"Set INIT_{network.name} in .env (the name registry contract address)")

resolver = Resolver(settings, ZilliqaService(settings))
try:
    print(asyncio.run(resolver.resolve_dns(network, init_address, domain)))
except DidError as exc:
    raise SystemExit(f"{exc.code}: {exc.message}") from exc
