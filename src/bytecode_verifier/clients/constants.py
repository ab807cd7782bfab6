"""Chain identifiers, RPC environment variables and known deployment factories."""

CHAIN_NAMES = {
    1: "Mainnet",
    5: "Goerli",
    10: "Optimism",
    100: "Gnosis Chain",
    137: "Polygon",
    42161: "Arbitrum One",
    43114: "Avalanche",
    11155111: "Sepolia",
}

RPC_URL_ENV_VARS = {
    1: "MAINNET_RPC_URL",
    5: "GOERLI_RPC_URL",
    10: "OPTIMISM_RPC_URL",
    100: "GNOSIS_CHAIN_RPC_URL",
    137: "POLYGON_RPC_URL",
    42161: "ARBITRUM_ONE_RPC_URL",
    43114: "AVALANCHE_RPC_URL",
    11155111: "SEPOLIA_RPC_URL",
}

DEFAULT_RPC_TIMEOUT = 10
DEFAULT_MAX_CHAIN_WORKERS = 8

# https://github.com/Arachnid/deterministic-deployment-proxy
# Calldata: salt (32 bytes) followed by the raw creation code.
ARACHNID_CREATE2_FACTORY = "0x4e59b44847b379578588920ca78fbf26c0b4956c"

# 0age's ImmutableCreate2Factory, only entry point is
#   safeCreate2(bytes32 salt, bytes calldata initializationCode)
# Calldata: selector (4) | salt (32) | offset (32) | length at offset | code
SAFE_CREATE2_FACTORY = "0x0000000000ffe8b47b3e2130213b802212439497"

KNOWN_CREATE2_FACTORIES = {
    ARACHNID_CREATE2_FACTORY: "Arachnid deterministic deployment proxy",
    SAFE_CREATE2_FACTORY: "ImmutableCreate2Factory (safeCreate2)",
}

SELECTOR_SIZE = 4
WORD_SIZE = 32


def chain_name(chain_id: int) -> str:
    return CHAIN_NAMES.get(int(chain_id), f"Chain {chain_id}")
