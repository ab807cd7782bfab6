"""Chain clients: RPC providers, creation discovery and multi-chain orchestration."""

from .constants import CHAIN_NAMES, KNOWN_CREATE2_FACTORIES, RPC_URL_ENV_VARS, chain_name
from .creation import ContractCreation, find_creation_code
from .multichain import ChainResponse, ContractMatch, MultiChainProvider
from .rpc import contract_runtime_code, normalize_address

__all__ = [
    "CHAIN_NAMES",
    "ChainResponse",
    "ContractCreation",
    "ContractMatch",
    "KNOWN_CREATE2_FACTORIES",
    "MultiChainProvider",
    "RPC_URL_ENV_VARS",
    "chain_name",
    "contract_runtime_code",
    "find_creation_code",
    "normalize_address",
]
