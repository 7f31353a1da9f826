from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging

import httpx

from .addresses import normalize_contract_address
from .config import NetworkNamespace, Settings
from .errors import NetworkUnavailable


logger = logging.getLogger(__name__)


def load_mock_states(path: str) -> Dict[str, Dict[str, Any]]:
    """Read a ``{contract address: contract state}`` JSON file."""
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise RuntimeError(f"Could not load mock registry file {path}: {exc}") from exc
    if not isinstance(document, dict) or not all(
        isinstance(state, dict) for state in document.values()
    ):
        raise RuntimeError(
            f"Mock registry file {path} must map contract addresses to state objects"
        )
    return document


class ZilliqaService:
    """Read-only access to smart contract state over the Zilliqa JSON-RPC API.

    In ``mock`` mode the state is served from ``mock_states`` instead, keyed by
    the normalised contract address. ``settings.mock_registry_file`` seeds
    those states when the service runs outside of tests.
    """

    def __init__(
        self,
        settings: Settings,
        mock_states: Optional[Dict[str, Dict[str, Any]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.mode = settings.zil_mode.lower()
        self._transport = transport
        self._mock_states: Dict[str, Dict[str, Any]] = {}
        if self.mode == "mock" and settings.mock_registry_file:
            loaded = load_mock_states(settings.mock_registry_file)
            logger.info(
                "Loaded %d mock contract states from %s",
                len(loaded), settings.mock_registry_file,
            )
            for address, state in loaded.items():
                self.set_mock_state(address, state)
        for address, state in (mock_states or {}).items():
            self.set_mock_state(address, state)

    def set_mock_state(self, address: str, state: Dict[str, Any]) -> None:
        self._mock_states[normalize_contract_address(address)] = state

    async def get_smart_contract_state(
        self, network: NetworkNamespace, address: str
    ) -> Dict[str, Any]:
        contract = normalize_contract_address(address)
        if self.mode == "mock":
            return self._mock_contract_state(contract)
        result = await self._raw_request(network, "GetSmartContractState", [contract])
        if not isinstance(result, dict):
            raise NetworkUnavailable(
                f"Unexpected GetSmartContractState result for {contract}"
            )
        return result

    def _mock_contract_state(self, contract: str) -> Dict[str, Any]:
        state = self._mock_states.get(contract)
        if state is None:
            raise NetworkUnavailable(f"No contract state for 0x{contract}")
        return state

    async def _raw_request(
        self, network: NetworkNamespace, method: str, params: list
    ) -> Any:
        url = self.settings.rpc_url(network)
        payload = {"id": "1", "jsonrpc": "2.0", "method": method, "params": params}
        logger.debug("%s %s on %s", method, params, url)
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as exc:
            logger.warning("%s request to %s failed: %s", method, url, exc)
            raise NetworkUnavailable(
                f"Could not reach the {NetworkNamespace(network).value} network: {exc}"
            ) from exc
        except ValueError as exc:
            raise NetworkUnavailable(f"Invalid JSON-RPC response from {url}") from exc

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise NetworkUnavailable(f"{method} failed: {message}")
        if not isinstance(body, dict) or "result" not in body:
            raise NetworkUnavailable(f"{method} returned no result")
        return body["result"]
