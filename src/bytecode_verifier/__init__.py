"""
Contract deployment verifier.

Recompiles a source repository and compares the resulting bytecode with the
creation and deployed code of a contract on every configured chain.
"""

from .bytecode import MatchType
from .clients import ChainResponse, ContractCreation, ContractMatch, MultiChainProvider
from .frameworks import Foundry, detect_framework
from .verification import VerifiedContract, reconcile_matches, verify_project

__all__ = [
    "ChainResponse",
    "ContractCreation",
    "ContractMatch",
    "Foundry",
    "MatchType",
    "MultiChainProvider",
    "VerifiedContract",
    "detect_framework",
    "reconcile_matches",
    "verify_project",
]

__version__ = "0.1.0"
