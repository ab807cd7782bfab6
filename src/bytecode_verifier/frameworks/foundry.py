"""Foundry (forge) implementation of the build framework capabilities."""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..bytecode.models import (
    ExpectedCreationBytecode,
    ExpectedDeployedBytecode,
    FoundCreationBytecode,
    FoundDeployedBytecode,
    ImmutableReferences,
)
from ..bytecode.structure import (
    structure_expected_creation_code,
    structure_expected_deployed_code,
    structure_found_creation_code,
    structure_found_deployed_code,
)
from ..errors import ArtifactReadError, UnsupportedFrameworkError
from .artifacts import CompilerArtifact, load_artifact, load_build_info
from .base import BuildCommand, SourceFile

logger = logging.getLogger(__name__)

CONFIG_FILE = "foundry.toml"
DEFAULT_PROFILE = "default"
LIBRARY_PREFIX = "lib/"
BUILD_INFO_DIR = "build_info"


class Foundry:
    """
    Foundry project rooted at `path`.

    Assumes the default forge layout of `src/`, `lib/` and an `out`-like
    artifact directory.
    """

    def __init__(self, path: Path):
        path = Path(path)
        if not self.is_supported(path):
            raise UnsupportedFrameworkError(f"Not a foundry project: {path}")
        self.path = path

    @staticmethod
    def is_supported(path: Path) -> bool:
        return (Path(path) / CONFIG_FILE).is_file()

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def profiles(self) -> List[str]:
        """
        Profile names declared in foundry.toml, always including `default`.

        Raises:
            UnsupportedFrameworkError: If foundry.toml cannot be parsed
        """
        config_file = self.path / CONFIG_FILE
        try:
            with open(config_file, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise UnsupportedFrameworkError(f"Unable to parse {config_file}: {e}") from e

        profile_table = data.get("profile")
        profiles = list(profile_table.keys()) if isinstance(profile_table, dict) else []
        if DEFAULT_PROFILE not in profiles:
            profiles.append(DEFAULT_PROFILE)
        return profiles

    def build_commands(self) -> List[BuildCommand]:
        profiles = self.profiles()
        logger.info(f"  Found profiles: {profiles}")
        return [
            BuildCommand(
                profile=profile,
                argv=[
                    "forge", "build",
                    "--skip", "test", "script",
                    "--build-info", "--build-info-path", BUILD_INFO_DIR,
                ],
                cwd=self.path,
                env={"FOUNDRY_PROFILE": profile},
            )
            for profile in profiles
        ]

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    def get_artifacts(self) -> List[Path]:
        """Artifact files from every top-level `out`-like directory, minus pure-library ones."""
        artifacts: List[Path] = []
        for entry in sorted(self.path.iterdir()):
            if entry.is_dir() and "out" in entry.name.lower():
                artifacts.extend(sorted(p for p in entry.rglob("*.json") if p.is_file()))
        return self.filter_artifacts(artifacts)

    @staticmethod
    def filter_artifacts(artifacts: List[Path]) -> List[Path]:
        """
        Drop artifacts whose sources all live under `lib/`.

        Artifacts without metadata sources cannot be the deployed contract and
        unreadable artifacts are skipped.
        """
        kept = []
        for artifact in artifacts:
            try:
                sources = load_artifact(artifact).source_paths
            except ArtifactReadError as e:
                logger.debug(f"Skipping artifact {artifact}: {e}")
                continue
            if not sources:
                continue
            if all(source.startswith(LIBRARY_PREFIX) for source in sources):
                continue
            kept.append(artifact)
        return kept

    @staticmethod
    def get_artifact_abi(artifact: Path) -> List[Dict[str, Any]]:
        return load_artifact(artifact).abi

    @staticmethod
    def get_artifact_creation_code(artifact: Path) -> bytes:
        return load_artifact(artifact).bytecode.object

    @staticmethod
    def get_artifact_deployed_code(artifact: Path) -> Tuple[bytes, ImmutableReferences]:
        deployed = load_artifact(artifact).deployed_bytecode
        return deployed.object, deployed.to_immutable_references()

    @staticmethod
    def get_artifact_compiler_info(artifact: Path) -> Optional[Dict[str, Any]]:
        """Compiler version (with commit), language and full settings, or None without metadata."""
        metadata = load_artifact(artifact).metadata
        if metadata is None:
            return None
        return {
            "compiler": metadata.compiler.version,
            "language": metadata.language,
            "settings": metadata.settings.as_dict(),
        }

    def build_info_files(self) -> List[Path]:
        """Build info files, most recently written first."""
        build_info_dir = self.path / BUILD_INFO_DIR
        if not build_info_dir.is_dir():
            return []
        return sorted(build_info_dir.glob("*.json"), key=lambda p: p.stat().st_mtime, reverse=True)

    def get_sources(self, artifact: Path) -> List[SourceFile]:
        """
        Source files the artifact was compiled from, with contents.

        Contents come from the build info written alongside the artifacts.
        The compilation target comes first, the rest are ordered by path.

        Raises:
            ArtifactReadError: If the artifact or a build info file cannot be read
        """
        parsed = load_artifact(artifact)
        wanted = parsed.source_paths
        contents: Dict[str, str] = {}
        for build_info_file in self.build_info_files():
            inlined = load_build_info(build_info_file).input.sources
            for path in wanted:
                if path not in contents and path in inlined:
                    contents[path] = inlined[path].content
            if len(contents) == len(wanted):
                break

        missing = [path for path in wanted if path not in contents]
        if missing:
            logger.warning(f"No build info content for {len(missing)} source file(s) of {artifact.name}")

        root = parsed.root_source
        ordered = sorted(contents, key=lambda path: (path != root, path))
        return [SourceFile(path=path, content=contents[path]) for path in ordered]

    # ------------------------------------------------------------------
    # Bytecode structuring
    # ------------------------------------------------------------------

    def structure_found_creation_code(self, artifact: Path) -> FoundCreationBytecode:
        parsed: CompilerArtifact = load_artifact(artifact)
        settings = parsed.settings
        return structure_found_creation_code(
            parsed.bytecode.object,
            bytecode_hash=settings.effective_bytecode_hash,
            append_cbor=settings.effective_append_cbor,
        )

    def structure_expected_creation_code(self, artifact: Path, found: FoundCreationBytecode,
                                         expected: bytes) -> ExpectedCreationBytecode:
        return structure_expected_creation_code(found, expected)

    def structure_found_deployed_code(self, artifact: Path) -> FoundDeployedBytecode:
        parsed = load_artifact(artifact)
        settings = parsed.settings
        return structure_found_deployed_code(
            parsed.deployed_bytecode.object,
            parsed.deployed_bytecode.to_immutable_references(),
            bytecode_hash=settings.effective_bytecode_hash,
            append_cbor=settings.effective_append_cbor,
        )

    def structure_expected_deployed_code(self, found: FoundDeployedBytecode,
                                         expected: bytes) -> ExpectedDeployedBytecode:
        return structure_expected_deployed_code(found, expected)
