"""
Test the Foundry framework and artifact schema.

Verifies:
- Project detection and profile discovery from foundry.toml
- Artifact discovery and library filtering
- Artifact accessors and metadata settings shapes
- Build command execution failures
"""

import json
import sys

import pytest

from bytecode_verifier.bytecode.models import ImmutableRange, MetadataInfo
from bytecode_verifier.errors import ArtifactReadError, BuildFailure, UnsupportedFrameworkError
from bytecode_verifier.frameworks import BuildCommand, Foundry, Framework, detect_framework, load_artifact

COUNTER_ABI = [
    {"inputs": [{"internalType": "uint256", "name": "initialNumber", "type": "uint256"}],
     "stateMutability": "nonpayable", "type": "constructor"},
    {"inputs": [], "name": "increment", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [], "name": "number", "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
     "stateMutability": "view", "type": "function"},
]


def write_json(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(content))
    return path


@pytest.fixture
def project(tmp_path):
    (tmp_path / "foundry.toml").write_text(
        "[profile.default]\nsrc = 'src'\n\n[profile.optimized]\noptimizer = true\noptimizer_runs = 200\n"
    )
    return tmp_path


def test_detect_framework_requires_foundry_toml(tmp_path):
    """A directory without foundry.toml is unsupported."""
    with pytest.raises(UnsupportedFrameworkError):
        detect_framework(tmp_path)
    with pytest.raises(UnsupportedFrameworkError):
        Foundry(tmp_path)


def test_detect_framework_returns_foundry(project):
    """A foundry project is detected and satisfies the framework interface."""
    framework = detect_framework(project)
    assert isinstance(framework, Foundry)
    assert isinstance(framework, Framework)


def test_profiles_include_default(project):
    """Declared profiles are listed and default is always present."""
    assert sorted(Foundry(project).profiles()) == ["default", "optimized"]


def test_profiles_added_default_when_missing(tmp_path):
    """A config with no profile tables still builds the default profile."""
    (tmp_path / "foundry.toml").write_text("")
    assert Foundry(tmp_path).profiles() == ["default"]


def test_invalid_foundry_toml_raises(tmp_path):
    """An unparsable config is reported as unsupported."""
    (tmp_path / "foundry.toml").write_text("[profile.default\n")
    with pytest.raises(UnsupportedFrameworkError):
        Foundry(tmp_path).profiles()


def test_build_commands_set_profile_and_cwd(project):
    """Each profile gets its own command with explicit cwd and env."""
    commands = {c.profile: c for c in Foundry(project).build_commands()}
    assert set(commands) == {"default", "optimized"}

    command = commands["optimized"]
    assert command.cwd == project
    assert command.env == {"FOUNDRY_PROFILE": "optimized"}
    assert list(command.argv[:2]) == ["forge", "build"]
    assert "--build-info" in command.argv
    assert command.describe().startswith("FOUNDRY_PROFILE=optimized forge build")


def test_get_artifacts_filters_library_and_sourceless(project):
    """Only artifacts with non-library sources are returned."""
    own = write_json(
        project / "out" / "Counter.sol" / "Counter.json",
        {"metadata": {"sources": {"src/Counter.sol": {}, "lib/forge-std/src/Test.sol": {}}}},
    )
    other_out = write_json(
        project / "out-optimized" / "Counter.sol" / "Counter.json",
        {"metadata": {"sources": {"src/Counter.sol": {}}}},
    )
    write_json(
        project / "out" / "Test.sol" / "Test.json",
        {"metadata": {"sources": {"lib/forge-std/src/Test.sol": {}}}},
    )
    write_json(project / "out" / "Empty.sol" / "Empty.json", {"abi": []})
    (project / "out" / "Broken.json").write_text("{not json")
    write_json(project / "src" / "Counter.json", {"metadata": {"sources": {"src/Counter.sol": {}}}})

    assert Foundry(project).get_artifacts() == [own, other_out]


def test_get_artifact_abi(tmp_path):
    """ABI entries are returned as written."""
    path = write_json(tmp_path / "Counter.json", {"abi": COUNTER_ABI})
    abi = Foundry.get_artifact_abi(path)
    assert len([e for e in abi if e["type"] == "function"]) == 2
    assert any(e["type"] == "constructor" for e in abi)


@pytest.mark.parametrize("code,expected", [("0x1234", b"\x12\x34"), ("", b"")])
def test_get_artifact_creation_code(tmp_path, code, expected):
    """Creation code decodes from hex, empty for interfaces."""
    path = write_json(tmp_path / "C.json", {"bytecode": {"object": code}})
    assert Foundry.get_artifact_creation_code(path) == expected


def test_get_artifact_deployed_code_with_immutables(tmp_path):
    """Deployed code comes with its immutable references."""
    path = write_json(tmp_path / "C.json", {
        "deployedBytecode": {
            "object": "0x7f000000005b",
            "immutableReferences": {"12": [{"start": 1, "length": 4}]},
        }
    })
    code, references = Foundry.get_artifact_deployed_code(path)
    assert code == bytes.fromhex("7f000000005b")
    assert references == {"12": [ImmutableRange(start=1, length=4)]}


@pytest.mark.parametrize(
    "settings,bytecode_hash,append_cbor",
    [
        ({"bytecodeHash": "ipfs", "appendCBOR": True}, "ipfs", True),
        ({}, None, None),
        ({"bytecodeHash": "bzzr1"}, "bzzr1", None),
        ({"metadata": {"bytecodeHash": "none", "appendCBOR": False}}, "none", False),
    ],
)
def test_artifact_metadata_settings(tmp_path, settings, bytecode_hash, append_cbor):
    """Settings are read both flat and nested under metadata."""
    path = write_json(tmp_path / "C.json", {"metadata": {"settings": settings}})
    parsed = load_artifact(path).settings
    assert parsed.effective_bytecode_hash == bytecode_hash
    assert parsed.effective_append_cbor == append_cbor


def test_get_artifact_compiler_info(tmp_path):
    """Compiler version and language come from artifact metadata."""
    path = write_json(tmp_path / "C.json", {
        "metadata": {"compiler": {"version": "0.8.19+commit.7dd6d404"}, "language": "Solidity"}
    })
    assert Foundry.get_artifact_compiler_info(path) == {
        "compiler": "0.8.19+commit.7dd6d404",
        "language": "Solidity",
        "settings": {},
    }
    assert Foundry.get_artifact_compiler_info(write_json(tmp_path / "D.json", {})) is None


def test_compiler_info_keeps_unmodelled_settings(tmp_path):
    """Every compiler setting in the artifact is reported."""
    settings = {"optimizer": {"enabled": True, "runs": 10_000}, "viaIR": True, "bytecodeHash": "ipfs"}
    path = write_json(tmp_path / "C.json", {"metadata": {"settings": settings}})
    assert Foundry.get_artifact_compiler_info(path)["settings"] == settings


def test_unlinked_library_is_artifact_error(tmp_path):
    """Bytecode with library placeholders is rejected."""
    path = write_json(tmp_path / "C.json", {
        "bytecode": {"object": "0x73__$b8833469e1d2dc1f6d6a2d4d0e0e0e0e0e$__6000"}
    })
    with pytest.raises(ArtifactReadError):
        load_artifact(path)


def test_missing_artifact_is_artifact_error(tmp_path):
    """A missing file is reported as an artifact error."""
    with pytest.raises(ArtifactReadError):
        load_artifact(tmp_path / "missing.json")


def test_structure_found_creation_code_from_artifact(project):
    """Artifact settings decide whether the trailer is split off."""
    framework = Foundry(project)
    plain = write_json(project / "A.json", {
        "bytecode": {"object": "0x1234"},
        "metadata": {"settings": {"bytecodeHash": "none", "appendCBOR": False}},
    })
    hashed = write_json(project / "B.json", {
        "bytecode": {"object": "0x1234567890abcdef0002"},
        "metadata": {"settings": {"bytecodeHash": "ipfs", "appendCBOR": True}},
    })

    found = framework.structure_found_creation_code(plain)
    assert found.leading_code == bytes.fromhex("1234")
    assert found.metadata == MetadataInfo()

    found = framework.structure_found_creation_code(hashed)
    assert found.leading_code == bytes.fromhex("1234567890ab")
    assert found.metadata == MetadataInfo(hash=bytes.fromhex("cdef0002"), start_index=6, end_index=10)


def test_build_command_missing_executable(tmp_path):
    """A missing build tool is a build failure."""
    command = BuildCommand(profile="default", argv=["definitely-not-a-build-tool-xyz"], cwd=tmp_path)
    with pytest.raises(BuildFailure):
        command.run()


def test_build_command_nonzero_exit(tmp_path):
    """A non-zero exit status is a build failure."""
    command = BuildCommand(
        profile="default",
        argv=[sys.executable, "-c", "import sys; sys.exit(3)"],
        cwd=tmp_path,
    )
    with pytest.raises(BuildFailure, match="exited with 3"):
        command.run()


def test_build_command_runs_in_cwd_with_env(tmp_path):
    """The command sees its working directory and profile env."""
    command = BuildCommand(
        profile="ci",
        argv=[sys.executable, "-c",
              "import os, pathlib; pathlib.Path('profile.txt').write_text(os.environ['FOUNDRY_PROFILE'])"],
        cwd=tmp_path,
        env={"FOUNDRY_PROFILE": "ci"},
    )
    command.run()
    assert (tmp_path / "profile.txt").read_text() == "ci"
