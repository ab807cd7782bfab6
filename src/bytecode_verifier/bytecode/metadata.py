"""Locate the metadata trailer solc appends to bytecode."""

import logging
from typing import Optional, Tuple

from .models import MetadataInfo

logger = logging.getLogger(__name__)


def get_metadata_hash_length(code: bytes) -> Optional[int]:
    """
    Read the self-declared metadata length from the last two bytes.

    The returned value excludes the two length bytes themselves.

    Args:
        code: Raw bytecode

    Returns:
        Declared length, or None if the code is too short or the length
        cannot fit inside the code
    """
    if len(code) <= 2:
        return None

    # Big-endian: second-to-last byte is the high byte.
    length = (code[-2] << 8) | code[-1]
    if length > len(code) - 2:
        return None
    return length


def split_at_metadata_hash(code: bytes) -> Tuple[bytes, Optional[bytes]]:
    """
    Split code into (everything before the metadata, the metadata trailer).

    The trailer includes the two length bytes. Code that does not end in a
    consistent length is treated as having no metadata.
    """
    metadata_length = get_metadata_hash_length(code)
    if metadata_length is None:
        return code, None

    split_index = len(code) - metadata_length - 2
    before, trailer = code[:split_index], code[split_index:]
    if not trailer:
        return code, None
    return before, trailer


def parse_metadata(code: bytes) -> MetadataInfo:
    """
    Locate the metadata trailer in raw bytecode.

    This is a heuristic: the only signal is that the last two bytes encode a
    length that fits inside the code, so code that happens to end in such
    bytes is misclassified. No further validation is applied because that
    would change match outcomes.

    Args:
        code: Raw bytecode

    Returns:
        MetadataInfo with hash and indices, or an empty MetadataInfo
    """
    leading_code, metadata_hash = split_at_metadata_hash(code)
    if metadata_hash is None:
        logger.debug(f"No metadata trailer found in {len(code)} bytes of code")
        return MetadataInfo()

    return MetadataInfo(
        hash=metadata_hash,
        start_index=len(leading_code),
        end_index=len(code),
    )
