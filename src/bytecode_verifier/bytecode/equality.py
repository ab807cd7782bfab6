"""Three-valued equality between locally built and on-chain bytecode."""

import logging

from .models import (
    ExpectedCreationBytecode,
    ExpectedDeployedBytecode,
    FoundCreationBytecode,
    FoundDeployedBytecode,
    MatchType,
    flatten_immutable_references,
    immutable_reference_set,
)

logger = logging.getLogger(__name__)


def creation_code_equality_check(found: FoundCreationBytecode,
                                 expected: ExpectedCreationBytecode) -> MatchType:
    """
    Compare creation code.

    Expected code may be longer than found code because of appended
    constructor arguments, never shorter.

    Returns:
        FULL on byte equality, PARTIAL when everything before the metadata
        matches, NONE otherwise
    """
    # Interfaces and abstract contracts compile to empty code.
    if not found.raw_code:
        return MatchType.NONE

    if len(found.raw_code) > len(expected.raw_code):
        return MatchType.NONE

    if found.raw_code == expected.raw_code:
        return MatchType.FULL

    if found.leading_code == expected.leading_code:
        return MatchType.PARTIAL

    return MatchType.NONE


def deployed_code_equality_check(found: FoundDeployedBytecode,
                                 expected: ExpectedDeployedBytecode) -> MatchType:
    """
    Compare deployed code, skipping immutable-value slots.

    Freshly compiled code has zero-filled placeholders where the deployed
    code has real immutable values. Every other byte of the leading code must
    match; the metadata tail is not compared.

    Returns:
        FULL on byte equality, PARTIAL when only immutable slots and metadata
        differ, NONE otherwise
    """
    # Deployed code has no variable-length tail.
    if len(found.raw_code) != len(expected.raw_code):
        return MatchType.NONE

    if found.raw_code == expected.raw_code:
        return MatchType.FULL

    if immutable_reference_set(found.immutable_references) != immutable_reference_set(
        expected.immutable_references
    ):
        logger.debug("Immutable references differ, no basis for a partial match")
        return MatchType.NONE

    found_code = found.leading_code
    expected_code = expected.leading_code
    cursor = 0
    for rng in flatten_immutable_references(found.immutable_references):
        if found_code[cursor:rng.start] != expected_code[cursor:rng.start]:
            return MatchType.NONE
        cursor = max(cursor, rng.end)

    if found_code[cursor:] != expected_code[cursor:]:
        return MatchType.NONE

    return MatchType.PARTIAL
