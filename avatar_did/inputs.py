"""
Builders for the key and service-endpoint records that feed a new DID state.

The question flow takes its answers from a ``prompt`` callable so that the
same validation runs for terminal input and for scripted input.
"""

from pathlib import Path
from typing import Callable, Dict, List
import json
import logging

from .config import NetworkNamespace
from .errors import InvalidInput
from .models import (
    CliInputModel,
    PrivateKeys,
    PublicKeyInput,
    PublicKeyPurpose,
    ServiceEndpointInput,
)


logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]

PURPOSE_CHOICES: Dict[str, List[PublicKeyPurpose]] = {
    "1": [PublicKeyPurpose.GENERAL],
    "2": [PublicKeyPurpose.AUTH],
}
DEFAULT_PURPOSE = [PublicKeyPurpose.GENERAL, PublicKeyPurpose.AUTH]
DEFAULT_SERVICE_TYPE = "website"
DEFAULT_SCHEME = "https://"


def parse_amount(text: str) -> int:
    try:
        amount = int(text.strip())
    except (AttributeError, ValueError) as exc:
        raise InvalidInput("It must be a number") from exc
    if amount < 0:
        raise InvalidInput("It must be a number >= 0")
    return amount


def resolve_purpose(choice: str) -> List[PublicKeyPurpose]:
    return list(PURPOSE_CHOICES.get(choice.strip(), DEFAULT_PURPOSE))


def resolve_endpoint(endpoint: str) -> str:
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    return DEFAULT_SCHEME + endpoint


def build_public_key_input(key_id: str, purpose_choice: str = "") -> PublicKeyInput:
    key_id = key_id.strip()
    if not key_id:
        raise InvalidInput("To register a key you must provide its ID")
    return PublicKeyInput(id=key_id, purpose=resolve_purpose(purpose_choice))


def build_service_input(
    service_id: str, service_type: str = "", endpoint: str = ""
) -> ServiceEndpointInput:
    service_id = service_id.strip()
    endpoint = endpoint.strip()
    if not service_id or not endpoint:
        raise InvalidInput(
            "To register a service-endpoint you must provide its ID, type and URL"
        )
    return ServiceEndpointInput(
        id=service_id,
        type=service_type.strip() or DEFAULT_SERVICE_TYPE,
        endpoint=resolve_endpoint(endpoint),
    )


def input_keys(prompt: Prompt = input) -> List[PublicKeyInput]:
    amount = parse_amount(prompt("How many keys would you like to add? "))
    if amount == 0:
        raise InvalidInput("It must be a number > 0")
    keys = []
    for _ in range(amount):
        key_id = prompt("Next, write down your key ID: ")
        purpose = prompt(
            "What is the key purpose: general(1), authentication(2) or both(3)? "
            "[1/2/3] - Defaults to both: "
        )
        keys.append(build_public_key_input(key_id, purpose))
    ids = [key.id for key in keys]
    if len(set(ids)) != len(ids):
        raise InvalidInput("Each key must have a different ID")
    return keys


def input_services(prompt: Prompt = input) -> List[ServiceEndpointInput]:
    amount = parse_amount(prompt("How many service endpoints would you like to add? "))
    services = []
    for _ in range(amount):
        service_id = prompt("Write down your service ID: ")
        service_type = prompt("Write down your service type - Defaults to 'website': ")
        endpoint = prompt("Write down your service URL - [yourwebsite.com]: ")
        services.append(build_service_input(service_id, service_type, endpoint))
    return services


def collect_cli_input(network: NetworkNamespace, prompt: Prompt = input) -> CliInputModel:
    return CliInputModel(
        network=network,
        public_key_input=input_keys(prompt),
        service=input_services(prompt),
    )


def save_private_keys(did: str, keys: PrivateKeys, directory: str = ".") -> Path:
    path = Path(directory) / f"DID_PRIVATE_KEYS_{did}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(keys.model_dump(by_alias=True, exclude_none=True), indent=2),
        encoding="utf-8",
    )
    logger.info("Private keys saved as: %s", path)
    return path
