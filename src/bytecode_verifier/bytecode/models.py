"""Structured bytecode types shared by the structurer and equality checks."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class MatchType(str, Enum):
    """Outcome of comparing a locally built artifact to on-chain code."""

    FULL = "Full"
    PARTIAL = "Partial"
    NONE = "None"


@dataclass(frozen=True)
class ImmutableRange:
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length


# Symbolic immutable name (solc AST id) -> byte ranges inside the deployed code
ImmutableReferences = Dict[str, List[ImmutableRange]]


def flatten_immutable_references(references: ImmutableReferences) -> List[ImmutableRange]:
    """Flatten references into a single list of ranges ordered by start offset."""
    return sorted(
        (rng for ranges in references.values() for rng in ranges),
        key=lambda rng: (rng.start, rng.length),
    )


def immutable_reference_set(references: ImmutableReferences) -> frozenset:
    """Order-independent view of a reference mapping, used for equality."""
    return frozenset(
        (name, rng.start, rng.length)
        for name, ranges in references.items()
        for rng in ranges
    )


@dataclass(frozen=True)
class MetadataInfo:
    """
    Location of the compiler-appended metadata trailer.

    Both indices are present or both are absent. When present,
    ``end_index - start_index == len(hash)``.
    """

    hash: Optional[bytes] = None
    start_index: Optional[int] = None
    end_index: Optional[int] = None

    def is_present(self) -> bool:
        return self.start_index is not None and self.end_index is not None

    def indices(self) -> Optional[Tuple[int, int]]:
        if not self.is_present():
            return None
        return self.start_index, self.end_index

    def __len__(self) -> int:
        return len(self.hash) if self.hash is not None else 0


@dataclass(frozen=True)
class FoundCreationBytecode:
    raw_code: bytes
    leading_code: bytes
    metadata: MetadataInfo = field(default_factory=MetadataInfo)


@dataclass(frozen=True)
class ExpectedCreationBytecode:
    raw_code: bytes
    leading_code: bytes
    metadata: MetadataInfo = field(default_factory=MetadataInfo)
    constructor_args: Optional[bytes] = None


@dataclass(frozen=True)
class FoundDeployedBytecode:
    raw_code: bytes
    leading_code: bytes
    metadata: MetadataInfo = field(default_factory=MetadataInfo)
    immutable_references: ImmutableReferences = field(default_factory=dict)


@dataclass(frozen=True)
class ExpectedDeployedBytecode:
    raw_code: bytes
    leading_code: bytes
    metadata: MetadataInfo = field(default_factory=MetadataInfo)
    immutable_references: ImmutableReferences = field(default_factory=dict)
