from dataclasses import dataclass
from enum import Enum
from pathlib import Path
import os

from dotenv import load_dotenv


ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(ENV_PATH)


class NetworkNamespace(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    ISOLATED = "isolated"


@dataclass(frozen=True)
class Settings:
    app_name: str = "Avatar DID Resolver"
    zil_mode: str = os.getenv("ZIL_MODE", "live")
    default_network: str = os.getenv("ZIL_NETWORK", NetworkNamespace.TESTNET.value)
    mainnet_url: str = os.getenv("ZIL_MAINNET_URL", "https://api.zilliqa.com/")
    testnet_url: str = os.getenv("ZIL_TESTNET_URL", "https://dev-api.zilliqa.com/")
    isolated_url: str = os.getenv(
        "ZIL_ISOLATED_URL", "https://zilliqa-isolated-server.zilliqa.com/"
    )
    init_mainnet: str = os.getenv("INIT_MAINNET", "")
    init_testnet: str = os.getenv("INIT_TESTNET", "")
    init_isolated: str = os.getenv("INIT_ISOLATED", "")
    # Field of the init contract state that holds the suffix -> avatar map.
    dns_field: str = os.getenv("DNS_FIELD", "dns")
    did_state_dir: str = os.getenv("DID_STATE_DIR", ".")
    request_timeout_seconds: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))
    api_key: str = os.getenv("API_KEY", "")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "human")
    log_file: str = os.getenv("LOG_FILE", "")
    # JSON object of contract address -> contract state, served when ZIL_MODE=mock.
    mock_registry_file: str = os.getenv("MOCK_REGISTRY_FILE", "")

    def rpc_url(self, network: NetworkNamespace) -> str:
        return {
            NetworkNamespace.MAINNET: self.mainnet_url,
            NetworkNamespace.TESTNET: self.testnet_url,
            NetworkNamespace.ISOLATED: self.isolated_url,
        }[NetworkNamespace(network)]

    def init_address(self, network: NetworkNamespace) -> str:
        return {
            NetworkNamespace.MAINNET: self.init_mainnet,
            NetworkNamespace.TESTNET: self.init_testnet,
            NetworkNamespace.ISOLATED: self.init_isolated,
        }[NetworkNamespace(network)]


settings = Settings()
