"""Concurrent per-chain discovery and artifact comparison."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterator, List, Mapping, Optional, Tuple, TypeVar

from web3 import Web3

from ..bytecode.equality import creation_code_equality_check, deployed_code_equality_check
from ..bytecode.models import MatchType
from ..errors import ArtifactReadError, LengthMismatch
from ..frameworks.base import Framework
from .constants import DEFAULT_MAX_CHAIN_WORKERS, DEFAULT_RPC_TIMEOUT, chain_name
from .creation import ContractCreation, find_creation_code
from .rpc import contract_runtime_code, normalize_address, providers_from_urls, rpc_urls_from_env

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ChainResponse(Generic[T]):
    """One independently nullable result per chain, plus why a chain is None."""

    responses: Dict[int, Optional[T]] = field(default_factory=dict)
    errors: Dict[int, str] = field(default_factory=dict)

    def get(self, chain_id: int) -> Optional[T]:
        return self.responses.get(chain_id)

    def is_all_none(self) -> bool:
        return all(value is None for value in self.responses.values())

    def iter_entries(self) -> Iterator[Tuple[int, T]]:
        for chain_id, value in self.responses.items():
            if value is not None:
                yield chain_id, value


@dataclass(frozen=True)
class ContractMatch:
    artifact: Path
    match_type: MatchType


class MultiChainProvider:
    """
    One read-only RPC handle per chain, fixed at construction.

    Per-chain work runs in a thread pool; a failure on one chain becomes None
    for that chain and never affects the others. There are no retries.
    """

    def __init__(self, providers: Mapping[int, Web3], max_workers: int = DEFAULT_MAX_CHAIN_WORKERS):
        self.providers: Dict[int, Web3] = dict(providers)
        self.max_workers = max(1, int(max_workers))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 timeout: int = DEFAULT_RPC_TIMEOUT,
                 max_workers: int = DEFAULT_MAX_CHAIN_WORKERS) -> "MultiChainProvider":
        return cls(providers_from_urls(rpc_urls_from_env(environ), timeout), max_workers)

    def _fan_out(self, task: Callable[[int, Web3], Optional[T]], description: str) -> ChainResponse[T]:
        """Run `task` once per chain and wait for all of them."""
        result: ChainResponse[T] = ChainResponse()
        if not self.providers:
            return result

        workers = min(self.max_workers, len(self.providers))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(task, chain_id, w3): chain_id
                for chain_id, w3 in self.providers.items()
            }
            for future in as_completed(futures):
                chain_id = futures[future]
                try:
                    result.responses[chain_id] = future.result()
                except Exception as e:
                    logger.warning(f"  {chain_name(chain_id)}: {description} failed: {e}")
                    result.responses[chain_id] = None
                    result.errors[chain_id] = str(e)
        return result

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def get_creation_code(self, address: str,
                          tx_hashes: Optional[Mapping[int, str]] = None) -> ChainResponse[ContractCreation]:
        """
        Recover creation data for `address` on every chain concurrently.

        Args:
            address: Contract address
            tx_hashes: Optional known creation transaction hash per chain

        Returns:
            ChainResponse of ContractCreation, None where discovery failed
        """
        address = normalize_address(address)
        tx_hashes = dict(tx_hashes or {})

        def task(chain_id: int, w3: Web3) -> ContractCreation:
            return find_creation_code(w3, address, tx_hashes.get(chain_id), label=chain_name(chain_id))

        return self._fan_out(task, "creation code discovery")

    def get_deployed_code(self, address: str) -> ChainResponse[bytes]:
        """Runtime code for `address` on every chain concurrently; None where empty."""
        address = normalize_address(address)

        def task(chain_id: int, w3: Web3) -> Optional[bytes]:
            code = contract_runtime_code(w3, address)
            if not code:
                logger.info(f"  {chain_name(chain_id)}: No deployed code.")
                return None
            return code

        return self._fan_out(task, "deployed code fetch")

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def _compare(self, artifacts: List[Path], expected_data: ChainResponse,
                 compare_one: Callable[[Path, Any], MatchType], label: str) -> ChainResponse[ContractMatch]:
        result: ChainResponse[ContractMatch] = ChainResponse()
        for chain_id in self.providers:
            expected = expected_data.get(chain_id)
            if expected is None:
                result.responses[chain_id] = None
                continue
            result.responses[chain_id] = self._best_match(chain_id, artifacts, expected, compare_one, label)
        return result

    @staticmethod
    def _best_match(chain_id: int, artifacts: List[Path], expected: Any,
                    compare_one: Callable[[Path, Any], MatchType], label: str) -> Optional[ContractMatch]:
        """
        Full match wins immediately; otherwise the last Partial seen is kept.

        Partial matches are not ranked.
        """
        partial: Optional[ContractMatch] = None
        for artifact in artifacts:
            try:
                match_type = compare_one(artifact, expected)
            except (ArtifactReadError, LengthMismatch) as e:
                logger.debug(f"  {chain_name(chain_id)}: Skipping {artifact.name} for {label}: {e}")
                continue
            if match_type == MatchType.FULL:
                return ContractMatch(artifact=artifact, match_type=MatchType.FULL)
            if match_type == MatchType.PARTIAL:
                partial = ContractMatch(artifact=artifact, match_type=MatchType.PARTIAL)
        return partial

    def compare_creation_code(self, framework: Framework,
                              creation_data: ChainResponse[ContractCreation]) -> ChainResponse[ContractMatch]:
        """Best creation-code match per chain among the framework's artifacts."""

        def compare_one(artifact: Path, expected: ContractCreation) -> MatchType:
            found = framework.structure_found_creation_code(artifact)
            structured = framework.structure_expected_creation_code(artifact, found, expected.creation_code)
            return creation_code_equality_check(found, structured)

        return self._compare(framework.get_artifacts(), creation_data, compare_one, "creation code")

    def compare_deployed_code(self, framework: Framework,
                              deployed_code: ChainResponse[bytes]) -> ChainResponse[ContractMatch]:
        """Best deployed-code match per chain among the framework's artifacts."""

        def compare_one(artifact: Path, expected: bytes) -> MatchType:
            found = framework.structure_found_deployed_code(artifact)
            structured = framework.structure_expected_deployed_code(found, expected)
            return deployed_code_equality_check(found, structured)

        return self._compare(framework.get_artifacts(), deployed_code, compare_one, "deployed code")
