import asyncio

import pytest

from avatar_did.config import Settings
from avatar_did.models import Operation, PublicKeyModel, Recovery, ServiceEndpointModel


REGISTRY = "0x" + "12" * 20
ALICE_RAW = "0x" + "ab" * 20


class StubZilliqa:
    """Stands in for ZilliqaService and records every state fetch."""

    def __init__(self, state=None, error=None):
        self.state = state
        self.error = error
        self.calls = []

    async def get_smart_contract_state(self, network, address):
        self.calls.append((network, address))
        if self.error is not None:
            raise self.error
        return self.state


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def settings():
    return Settings(zil_mode="mock", dns_field="dns", api_key="")


@pytest.fixture
def registry_state():
    return {"dns": {".ssi": {"alice_01": ALICE_RAW}, ".did": {}}}


def make_key(key_id="key-1", purpose=("general",)):
    return PublicKeyModel(
        id=key_id, type="EcdsaSecp256k1VerificationKey2019",
        public_key_base58="base58-" + key_id, purpose=purpose,
    )


def make_update_key(suffix="1"):
    return Operation(
        id="update", type="EcdsaSecp256k1VerificationKey2019",
        public_key_base58="update-" + suffix,
    )


def make_recovery_key(suffix="1"):
    return Recovery(
        id="recovery", type="EcdsaSecp256k1VerificationKey2019",
        public_key_base58="recovery-" + suffix,
    )


def make_service(service_id="homepage"):
    return ServiceEndpointModel(id=service_id, type="website", endpoint="https://example.com")
