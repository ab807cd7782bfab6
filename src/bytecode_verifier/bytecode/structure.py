"""Split raw bytecode into leading code, metadata and constructor arguments."""

import logging
from typing import Optional, Tuple

from ..errors import LengthMismatch
from .metadata import parse_metadata
from .models import (
    ExpectedCreationBytecode,
    ExpectedDeployedBytecode,
    FoundCreationBytecode,
    FoundDeployedBytecode,
    ImmutableReferences,
    MetadataInfo,
)

logger = logging.getLogger(__name__)

NO_BYTECODE_HASH = "none"


def emits_metadata(bytecode_hash: Optional[str], append_cbor: Optional[bool]) -> bool:
    """
    Whether compiler settings imply a metadata trailer.

    Absent settings mean "no metadata": only ``bytecodeHash == none`` together
    with ``appendCBOR == false`` guarantees code without a trailer, and both
    fields default to those values.
    """
    hash_mode = (bytecode_hash or NO_BYTECODE_HASH).lower()
    return hash_mode != NO_BYTECODE_HASH or bool(append_cbor)


def _split_found(raw_code: bytes, with_metadata: bool) -> Tuple[bytes, MetadataInfo]:
    if not with_metadata:
        return raw_code, MetadataInfo()
    metadata = parse_metadata(raw_code)
    split_index = metadata.start_index if metadata.is_present() else len(raw_code)
    return raw_code[:split_index], metadata


def _split_expected(found_raw: bytes, found_leading: bytes, found_metadata: MetadataInfo,
                    expected_raw: bytes, kind: str) -> Tuple[bytes, MetadataInfo]:
    if len(expected_raw) < len(found_leading):
        raise LengthMismatch(
            f"Expected {kind} bytecode ({len(expected_raw)} bytes) is shorter than "
            f"found leading code ({len(found_leading)} bytes)"
        )

    # Leading code ends where the found metadata starts; the metadata region
    # length is fixed by compiler settings even though its bytes differ.
    split_index = found_metadata.start_index if found_metadata.is_present() else len(found_raw)
    leading_code = expected_raw[:split_index]

    if found_metadata.is_present():
        start, end = found_metadata.indices()
        metadata = MetadataInfo(hash=expected_raw[start:end], start_index=start, end_index=end)
    else:
        metadata = MetadataInfo()
    return leading_code, metadata


def structure_found_creation_code(raw_code: bytes, bytecode_hash: Optional[str] = None,
                                  append_cbor: Optional[bool] = None) -> FoundCreationBytecode:
    """Structure locally compiled creation code."""
    leading_code, metadata = _split_found(raw_code, emits_metadata(bytecode_hash, append_cbor))
    return FoundCreationBytecode(raw_code=raw_code, leading_code=leading_code, metadata=metadata)


def structure_expected_creation_code(found: FoundCreationBytecode,
                                     expected_raw: bytes) -> ExpectedCreationBytecode:
    """
    Structure on-chain creation code using the found structure as a template.

    Args:
        found: Structured locally compiled creation code
        expected_raw: Creation code recovered from the chain

    Returns:
        ExpectedCreationBytecode; bytes past the leading code and metadata
        are the encoded constructor arguments

    Raises:
        LengthMismatch: If the expected code is shorter than the found leading code
    """
    leading_code, metadata = _split_expected(
        found.raw_code, found.leading_code, found.metadata, expected_raw, "creation"
    )

    accumulated_len = len(leading_code) + len(metadata)
    constructor_args = expected_raw[accumulated_len:] if len(expected_raw) > accumulated_len else None
    if constructor_args is not None:
        logger.debug(f"Found {len(constructor_args)} bytes of constructor arguments")

    return ExpectedCreationBytecode(
        raw_code=expected_raw,
        leading_code=leading_code,
        metadata=metadata,
        constructor_args=constructor_args,
    )


def structure_found_deployed_code(raw_code: bytes, immutable_references: ImmutableReferences,
                                  bytecode_hash: Optional[str] = None,
                                  append_cbor: Optional[bool] = None) -> FoundDeployedBytecode:
    """Structure locally compiled deployed (runtime) code."""
    leading_code, metadata = _split_found(raw_code, emits_metadata(bytecode_hash, append_cbor))
    return FoundDeployedBytecode(
        raw_code=raw_code,
        leading_code=leading_code,
        metadata=metadata,
        immutable_references=immutable_references,
    )


def structure_expected_deployed_code(found: FoundDeployedBytecode,
                                     expected_raw: bytes) -> ExpectedDeployedBytecode:
    """
    Structure on-chain deployed code using the found structure as a template.

    Immutable references are copied from the found structure since both
    sides come from the same compiled artifact.

    Raises:
        LengthMismatch: If the expected code is shorter than the found leading code
    """
    leading_code, metadata = _split_expected(
        found.raw_code, found.leading_code, found.metadata, expected_raw, "deployed"
    )
    return ExpectedDeployedBytecode(
        raw_code=expected_raw,
        leading_code=leading_code,
        metadata=metadata,
        immutable_references=dict(found.immutable_references),
    )
