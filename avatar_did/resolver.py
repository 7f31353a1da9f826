from typing import Any, Mapping, Tuple
import logging
import re

from .addresses import to_bech32_address
from .config import NetworkNamespace, Settings
from .errors import AvatarNotFound, DomainNotFound, NameInvalid
from .zilliqa_service import ZilliqaService


logger = logging.getLogger(__name__)

AVATAR_MAX_LENGTH = 15
DOMAIN_SEPARATOR = "."

_AVATAR_PATTERN = re.compile(r"[A-Za-z0-9_]+")


def validate_avatar(avatar: str) -> None:
    if (
        not isinstance(avatar, str)
        or not _AVATAR_PATTERN.fullmatch(avatar)
        or len(avatar) > AVATAR_MAX_LENGTH
    ):
        raise NameInvalid(
            "The domain name must be 15 characters or less and contain only "
            "letters, numbers and underscores, and no spaces"
        )


def split_domain(domain_name: str) -> Tuple[str, str]:
    """Split ``avatar.suffix`` at the last separator; the suffix keeps its dot."""
    index = domain_name.rfind(DOMAIN_SEPARATOR)
    if index < 0:
        raise NameInvalid(
            f"The domain name {domain_name!r} has no '{DOMAIN_SEPARATOR}' separator"
        )
    return domain_name[:index], domain_name[index:]


def get_value_from_map(entries: Any, key: str, error: type, message: str) -> Any:
    if not isinstance(entries, Mapping) or key not in entries:
        raise error(message)
    return entries[key]


class Resolver:
    def __init__(self, settings: Settings, zilliqa: ZilliqaService) -> None:
        self.settings = settings
        self.zilliqa = zilliqa

    async def resolve_dns(
        self, network: NetworkNamespace, init_address: str, domain_name: str
    ) -> str:
        network = NetworkNamespace(network)
        avatar, suffix = split_domain(domain_name)
        validate_avatar(avatar)

        state = await self.zilliqa.get_smart_contract_state(network, init_address)

        dns = get_value_from_map(
            state,
            self.settings.dns_field,
            DomainNotFound,
            f"The registry has no '{self.settings.dns_field}' map",
        )
        records = get_value_from_map(
            dns, suffix, DomainNotFound, f"Domain {suffix!r} not found"
        )
        raw_address = get_value_from_map(
            records, avatar, AvatarNotFound, f"Avatar {avatar!r} not found in {suffix!r}"
        )
        address = to_bech32_address(raw_address)
        logger.info("Resolved %s on %s to %s", domain_name, network.value, address)
        return address
