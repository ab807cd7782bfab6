"""Bytecode parsing, structuring and comparison."""

from .equality import creation_code_equality_check, deployed_code_equality_check
from .metadata import parse_metadata
from .models import (
    ExpectedCreationBytecode,
    ExpectedDeployedBytecode,
    FoundCreationBytecode,
    FoundDeployedBytecode,
    ImmutableRange,
    ImmutableReferences,
    MatchType,
    MetadataInfo,
)
from .structure import (
    structure_expected_creation_code,
    structure_expected_deployed_code,
    structure_found_creation_code,
    structure_found_deployed_code,
)

__all__ = [
    "ExpectedCreationBytecode",
    "ExpectedDeployedBytecode",
    "FoundCreationBytecode",
    "FoundDeployedBytecode",
    "ImmutableRange",
    "ImmutableReferences",
    "MatchType",
    "MetadataInfo",
    "creation_code_equality_check",
    "deployed_code_equality_check",
    "parse_metadata",
    "structure_expected_creation_code",
    "structure_expected_deployed_code",
    "structure_found_creation_code",
    "structure_found_deployed_code",
]
