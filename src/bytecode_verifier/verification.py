"""Build every profile, compare against chain data and reconcile verdicts per chain."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .clients.constants import chain_name
from .clients.creation import ContractCreation
from .clients.multichain import ChainResponse, ContractMatch, MultiChainProvider
from .errors import BuildFailure, NoExpectedDataError
from .frameworks.base import Framework

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedContract:
    """Artifact accepted for one chain, with the verdict of each comparison leg."""

    artifact: Path
    creation_match: Optional[ContractMatch]
    deployed_match: Optional[ContractMatch]
    profile: Optional[str] = None


def fetch_expected_data(provider: MultiChainProvider, address: str,
                        tx_hashes: Optional[Mapping[int, str]] = None
                        ) -> Tuple[ChainResponse[ContractCreation], ChainResponse[bytes]]:
    """
    Fetch creation data and deployed code on every chain.

    Raises:
        NoExpectedDataError: If no chain returned either
    """
    logger.info("\nFETCHING CREATION CODE")
    creation_data = provider.get_creation_code(address, tx_hashes)
    found_on = [chain_name(c) for c, _ in creation_data.iter_entries()]
    logger.info(f"  Found creation code on the following chains: {found_on}")

    logger.info("\nFETCHING DEPLOYED CODE")
    deployed_code = provider.get_deployed_code(address)
    found_on = [chain_name(c) for c, _ in deployed_code.iter_entries()]
    logger.info(f"  Found deployed code on the following chains: {found_on}")

    if creation_data.is_all_none() and deployed_code.is_all_none():
        raise NoExpectedDataError(f"No creation or deployed code found for {address} on any configured chain")
    return creation_data, deployed_code


def reconcile_matches(creation_matches: ChainResponse[ContractMatch],
                      deployed_matches: ChainResponse[ContractMatch],
                      chains: Iterable[int],
                      profile: Optional[str] = None) -> Dict[int, VerifiedContract]:
    """
    Combine creation and deployed verdicts per chain.

    Both legs naming different artifacts is a conflict and yields nothing for
    that chain. One leg alone is accepted with the other recorded as None.
    """
    verified: Dict[int, VerifiedContract] = {}
    for chain_id in chains:
        creation = creation_matches.get(chain_id)
        deployed = deployed_matches.get(chain_id)

        if creation is None and deployed is None:
            continue

        if creation is not None and deployed is not None and creation.artifact != deployed.artifact:
            logger.warning(
                f"  {chain_name(chain_id)}: Creation code matched {creation.artifact.name} "
                f"but deployed code matched {deployed.artifact.name}, discarding both"
            )
            continue

        artifact = creation.artifact if creation is not None else deployed.artifact
        verified[chain_id] = VerifiedContract(
            artifact=artifact,
            creation_match=creation,
            deployed_match=deployed,
            profile=profile,
        )
    return verified


def verify_project(provider: MultiChainProvider, framework: Framework,
                   creation_data: ChainResponse[ContractCreation],
                   deployed_code: ChainResponse[bytes]) -> Dict[int, VerifiedContract]:
    """
    Build each profile and collect verified contracts per chain.

    A profile that fails to build is skipped. A later profile's match for a
    chain overwrites an earlier one.
    """
    logger.info("\nBUILDING CONTRACTS AND COMPARING BYTECODE")
    verified: Dict[int, VerifiedContract] = {}

    for command in framework.build_commands():
        logger.info(f"  Building with command: {command.describe()}")
        try:
            command.run()
        except BuildFailure as e:
            logger.info(f"    Build failed, continuing to next build command. ({e})")
            continue
        logger.info("    Build succeeded, comparing creation and deployed code.")

        creation_matches = provider.compare_creation_code(framework, creation_data)
        deployed_matches = provider.compare_deployed_code(framework, deployed_code)
        chains = list(provider.providers.keys())
        profile_verified = reconcile_matches(creation_matches, deployed_matches, chains, command.profile)

        if not profile_verified:
            logger.info("    No matching contracts found, continuing to next build command.")

        for chain_id, contract in profile_verified.items():
            logger.info(f"    ✅ Found matching contract on {chain_name(chain_id)}: {contract.artifact.stem}")
            verified[chain_id] = contract

    return verified
