"""
Test per-chain fan-out and artifact comparison.

Verifies:
- One failing chain never affects the others
- A full match wins immediately, otherwise the last partial is kept
- Artifacts that cannot be read or structured are skipped
"""

from pathlib import Path

import pytest

from bytecode_verifier.bytecode.models import MatchType
from bytecode_verifier.bytecode.structure import (
    structure_expected_creation_code,
    structure_expected_deployed_code,
    structure_found_creation_code,
    structure_found_deployed_code,
)
from bytecode_verifier.clients.creation import ContractCreation
from bytecode_verifier.clients.multichain import ChainResponse, ContractMatch, MultiChainProvider
from bytecode_verifier.errors import ArtifactReadError, InvalidAddressError

ADDRESS = "0x" + "11" * 20
ONCHAIN_CREATION = bytes.fromhex("60606040525b" + "aabb0002")
SAME_LEADING = bytes.fromhex("60606040525b" + "ccdd0002")
OTHER_LEADING = bytes.fromhex("60806040525b" + "aabb0002")
TOO_LONG_LEADING = bytes.fromhex("60606040525b60606040525b" + "aabb0002")


class FakeEth:
    """Mock eth module returning fixed runtime code."""

    block_number = 10

    def __init__(self, code=b"", error=None):
        self._code = code
        self._error = error

    def get_code(self, _addr, block_identifier=None):
        if self._error is not None:
            raise self._error
        return self._code


class FakeWeb3:
    """Mock Web3 instance."""

    def __init__(self, code=b"", error=None):
        self.eth = FakeEth(code, error)


class FakeFramework:
    """Framework whose artifacts are in-memory creation codes."""

    def __init__(self, creation):
        self.path = Path("project")
        self.creation = creation
        self.structured = []

    def get_artifacts(self):
        return list(self.creation)

    def build_commands(self):
        return []

    def structure_found_creation_code(self, artifact):
        self.structured.append(artifact)
        code = self.creation[artifact]
        if isinstance(code, Exception):
            raise code
        return structure_found_creation_code(code, "ipfs", True)

    def structure_expected_creation_code(self, artifact, found, expected):
        return structure_expected_creation_code(found, expected)

    def structure_found_deployed_code(self, artifact):
        return structure_found_deployed_code(self.creation[artifact], {}, "ipfs", True)

    def structure_expected_deployed_code(self, found, expected):
        return structure_expected_deployed_code(found, expected)


def creation_response(code=ONCHAIN_CREATION, chains=(1,)):
    return ChainResponse(responses={
        chain_id: ContractCreation(tx_hash="0x" + "ab" * 32, block=1, creation_code=code)
        for chain_id in chains
    })


def test_chain_response_helpers():
    """Helpers skip None entries."""
    response = ChainResponse(responses={1: None, 10: b"\x60"})
    assert not response.is_all_none()
    assert list(response.iter_entries()) == [(10, b"\x60")]
    assert response.get(1) is None
    assert response.get(137) is None
    assert sorted(response.responses) == [1, 10]
    assert ChainResponse(responses={1: None}).is_all_none()


def test_get_deployed_code_isolates_failing_chain():
    """A chain whose RPC fails is None with a recorded error."""
    provider = MultiChainProvider({
        1: FakeWeb3(code=b"\x60\x80"),
        10: FakeWeb3(error=ConnectionError("connection refused")),
        137: FakeWeb3(code=b""),
    })
    deployed = provider.get_deployed_code(ADDRESS)

    assert deployed.responses == {1: b"\x60\x80", 10: None, 137: None}
    assert "connection refused" in deployed.errors[10]
    assert 137 not in deployed.errors


def test_get_deployed_code_rejects_invalid_address():
    """Address validation happens before any chain is queried."""
    provider = MultiChainProvider({1: FakeWeb3(code=b"\x60")})
    with pytest.raises(InvalidAddressError):
        provider.get_deployed_code("0x1234")


def test_get_creation_code_records_no_code_error():
    """Discovery failures are per chain, not raised."""
    provider = MultiChainProvider({1: FakeWeb3(code=b"")}, max_workers=2)
    creation = provider.get_creation_code(ADDRESS)
    assert creation.responses == {1: None}
    assert 1 in creation.errors


def test_full_match_short_circuits():
    """The first full match is returned without looking further."""
    framework = FakeFramework({
        Path("out/A.json"): SAME_LEADING,
        Path("out/B.json"): ONCHAIN_CREATION,
        Path("out/C.json"): SAME_LEADING,
    })
    provider = MultiChainProvider({1: FakeWeb3()})

    matches = provider.compare_creation_code(framework, creation_response())
    assert matches.get(1) == ContractMatch(artifact=Path("out/B.json"), match_type=MatchType.FULL)
    assert Path("out/C.json") not in framework.structured


def test_last_partial_match_wins():
    """Without a full match the last partial artifact is kept."""
    framework = FakeFramework({
        Path("out/A.json"): SAME_LEADING,
        Path("out/B.json"): OTHER_LEADING,
        Path("out/C.json"): SAME_LEADING,
    })
    provider = MultiChainProvider({1: FakeWeb3()})

    matches = provider.compare_creation_code(framework, creation_response())
    assert matches.get(1) == ContractMatch(artifact=Path("out/C.json"), match_type=MatchType.PARTIAL)


def test_unusable_artifacts_are_skipped():
    """Unreadable artifacts and too-short chain code do not abort comparison."""
    framework = FakeFramework({
        Path("out/Broken.json"): ArtifactReadError("bad json"),
        Path("out/Long.json"): TOO_LONG_LEADING,
        Path("out/A.json"): ONCHAIN_CREATION,
    })
    provider = MultiChainProvider({1: FakeWeb3()})

    matches = provider.compare_creation_code(framework, creation_response())
    assert matches.get(1).artifact == Path("out/A.json")


def test_chains_without_expected_data_have_no_match():
    """A chain with no creation data is None in the comparison."""
    framework = FakeFramework({Path("out/A.json"): ONCHAIN_CREATION})
    provider = MultiChainProvider({1: FakeWeb3(), 10: FakeWeb3()})
    creation = creation_response(chains=(1,))
    creation.responses[10] = None

    matches = provider.compare_creation_code(framework, creation)
    assert matches.get(1).match_type == MatchType.FULL
    assert matches.get(10) is None
    assert sorted(matches.responses) == [1, 10]


def test_compare_deployed_code():
    """Deployed comparison uses the same best-match selection."""
    framework = FakeFramework({Path("out/A.json"): ONCHAIN_CREATION})
    provider = MultiChainProvider({1: FakeWeb3()})
    deployed = ChainResponse(responses={1: SAME_LEADING})

    matches = provider.compare_deployed_code(framework, deployed)
    assert matches.get(1) == ContractMatch(artifact=Path("out/A.json"), match_type=MatchType.PARTIAL)
