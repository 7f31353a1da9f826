from typing import Optional
import re

from bech32 import bech32_decode, bech32_encode, convertbits

from .errors import AddressInvalid


HRP = "zil"
ADDRESS_BYTES = 20

_HEX_ADDRESS = re.compile(r"(?:0x)?([0-9a-fA-F]{40})")


def _hex_body(address: str) -> Optional[str]:
    match = _HEX_ADDRESS.fullmatch(address.strip())
    if not match:
        return None
    return match.group(1).lower()


def is_bech32_address(address: str) -> bool:
    hrp, data = bech32_decode(address)
    if hrp != HRP or data is None:
        return False
    decoded = convertbits(data, 5, 8, False)
    return decoded is not None and len(decoded) == ADDRESS_BYTES


def to_bech32_address(address: str) -> str:
    """Encode a raw ``0x``-prefixed (or bare) hex address as ``zil1...``."""
    if not isinstance(address, str):
        raise AddressInvalid(f"Expected an address string, got {type(address).__name__}")
    if is_bech32_address(address):
        return address
    body = _hex_body(address)
    if body is None:
        raise AddressInvalid(f"Not a valid base-16 address: {address!r}")
    words = convertbits(bytes.fromhex(body), 8, 5)
    return bech32_encode(HRP, words)


def from_bech32_address(address: str) -> str:
    hrp, data = bech32_decode(address)
    if hrp != HRP or data is None:
        raise AddressInvalid(f"Not a valid bech32 address: {address!r}")
    decoded = convertbits(data, 5, 8, False)
    if decoded is None or len(decoded) != ADDRESS_BYTES:
        raise AddressInvalid(f"Not a valid bech32 address: {address!r}")
    return "0x" + bytes(decoded).hex()


def normalize_contract_address(address: str) -> str:
    """Return the lowercase hex form, without ``0x``, that the JSON-RPC API expects."""
    if is_bech32_address(address):
        return from_bech32_address(address)[2:]
    body = _hex_body(address)
    if body is None:
        raise AddressInvalid(f"Not a valid contract address: {address!r}")
    return body
