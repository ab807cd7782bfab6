"""Verification report model and JSON output."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from eth_utils import encode_hex
from pydantic import BaseModel, ConfigDict, Field

from .bytecode.models import MatchType
from .clients.constants import chain_name
from .clients.creation import ContractCreation
from .clients.multichain import ChainResponse
from .errors import ArtifactReadError
from .frameworks.base import Framework, SourceFile
from .verification import VerifiedContract

logger = logging.getLogger(__name__)


def _hex_or_none(code: Optional[bytes]) -> Optional[str]:
    return encode_hex(code) if code is not None else None


class ChainVerification(BaseModel):
    model_config = ConfigDict(extra="forbid")

    chain_id: int
    chain: str
    artifact: str
    contract_name: str
    profile: Optional[str] = None
    creation_match: MatchType = MatchType.NONE
    deployed_match: MatchType = MatchType.NONE
    creation_tx_hash: Optional[str] = None
    creation_block_number: Optional[int] = None
    creation_code: Optional[str] = None
    runtime_code: Optional[str] = None
    creation_bytecode: Optional[str] = None
    deployed_bytecode: Optional[str] = None
    abi: List[Dict[str, Any]] = Field(default_factory=list)
    sources: List[SourceFile] = Field(default_factory=list)
    compiler: Optional[str] = None
    language: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)


class VerificationReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    repo_url: Optional[str] = None
    repo_commit: Optional[str] = None
    contract_address: str
    chains: List[int] = Field(default_factory=list)
    results: List[ChainVerification] = Field(default_factory=list)
    discovery_errors: Dict[int, str] = Field(default_factory=dict)

    @property
    def verified(self) -> bool:
        return bool(self.results)


def _artifact_details(framework: Framework, artifact: Path) -> Dict[str, Any]:
    """Compiled output and compiler info for the report; empty if the artifact is unreadable."""
    try:
        details: Dict[str, Any] = {
            "abi": framework.get_artifact_abi(artifact),
            "creation_bytecode": encode_hex(framework.get_artifact_creation_code(artifact)),
            "deployed_bytecode": encode_hex(framework.get_artifact_deployed_code(artifact)[0]),
            "sources": framework.get_sources(artifact),
        }
        compiler_info = framework.get_artifact_compiler_info(artifact)
    except ArtifactReadError as e:
        logger.warning(f"Could not read artifact details from {artifact}: {e}")
        return {}

    if compiler_info is not None:
        details["compiler"] = compiler_info["compiler"] or None
        details["language"] = compiler_info["language"] or None
        details["settings"] = compiler_info["settings"]
    return details


def _chain_verification(chain_id: int, contract: VerifiedContract, framework: Framework,
                        creation: Optional[ContractCreation],
                        runtime_code: Optional[bytes]) -> ChainVerification:
    return ChainVerification(
        chain_id=chain_id,
        chain=chain_name(chain_id),
        artifact=str(contract.artifact),
        contract_name=contract.artifact.stem,
        profile=contract.profile,
        creation_match=contract.creation_match.match_type if contract.creation_match else MatchType.NONE,
        deployed_match=contract.deployed_match.match_type if contract.deployed_match else MatchType.NONE,
        creation_tx_hash=creation.tx_hash if creation else None,
        creation_block_number=creation.block if creation else None,
        creation_code=_hex_or_none(creation.creation_code) if creation else None,
        runtime_code=_hex_or_none(runtime_code),
        **_artifact_details(framework, contract.artifact),
    )


def build_report(address: str, verified: Mapping[int, VerifiedContract], framework: Framework,
                 creation_data: ChainResponse[ContractCreation],
                 deployed_code: ChainResponse[bytes],
                 repo_url: Optional[str] = None,
                 repo_commit: Optional[str] = None) -> VerificationReport:
    """
    Assemble a report from per-chain verification results.

    Args:
        address: Verified contract address
        verified: Accepted artifact per chain
        framework: Framework the artifacts were built with
        creation_data: Creation data per chain
        deployed_code: Runtime code per chain
        repo_url: Source repository URL
        repo_commit: Checked out commit

    Returns:
        VerificationReport with one entry per verified chain
    """
    results = [
        _chain_verification(
            chain_id, contract, framework, creation_data.get(chain_id), deployed_code.get(chain_id)
        )
        for chain_id, contract in sorted(verified.items())
    ]
    return VerificationReport(
        repo_url=repo_url,
        repo_commit=repo_commit,
        contract_address=address,
        chains=sorted(verified.keys()),
        results=results,
        discovery_errors=dict(creation_data.errors),
    )


def save_json_results(report: VerificationReport, json_output: Path) -> None:
    """
    Save a verification report to a JSON file.

    Args:
        report: Verification report
        json_output: Path to JSON output file
    """
    logger.info(f"Saving JSON results to {json_output}")
    json_output.parent.mkdir(parents=True, exist_ok=True)
    json_output.write_text(report.model_dump_json(indent=2), encoding="utf-8")
