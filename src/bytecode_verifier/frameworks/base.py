"""Build framework capability interface and build command runner."""

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ..bytecode.models import (
    ExpectedCreationBytecode,
    ExpectedDeployedBytecode,
    FoundCreationBytecode,
    FoundDeployedBytecode,
    ImmutableReferences,
)
from ..errors import BuildFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    path: str
    content: str


@dataclass(frozen=True)
class BuildCommand:
    """
    One compiler invocation for a single build profile.

    The working directory is explicit; the process-wide cwd is never changed.
    """

    profile: str
    argv: Sequence[str]
    cwd: Path
    env: Dict[str, str] = field(default_factory=dict)

    def describe(self) -> str:
        env_prefix = " ".join(f"{k}={v}" for k, v in sorted(self.env.items()))
        return f"{env_prefix} {' '.join(self.argv)}".strip()

    def run(self) -> subprocess.CompletedProcess:
        """
        Execute the command.

        Raises:
            BuildFailure: If the executable is missing or exits non-zero
        """
        try:
            result = subprocess.run(
                list(self.argv),
                cwd=self.cwd,
                env={**os.environ, **self.env},
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise BuildFailure(f"Could not run build for profile '{self.profile}': {e}") from e

        if result.returncode != 0:
            stderr_tail = (result.stderr or "").strip()[-500:]
            raise BuildFailure(
                f"Build for profile '{self.profile}' exited with {result.returncode}: {stderr_tail}"
            )
        return result


@runtime_checkable
class Framework(Protocol):
    """
    Capabilities a build tool must provide.

    Each concrete tool implements these operations; supporting a new tool
    means adding an implementation and registering it in FRAMEWORKS.
    """

    path: Path

    def build_commands(self) -> List[BuildCommand]:
        ...

    def get_artifacts(self) -> List[Path]:
        ...

    def get_artifact_abi(self, artifact: Path) -> List[Dict[str, Any]]:
        ...

    def get_artifact_creation_code(self, artifact: Path) -> bytes:
        ...

    def get_artifact_deployed_code(self, artifact: Path) -> Tuple[bytes, ImmutableReferences]:
        ...

    def get_artifact_compiler_info(self, artifact: Path) -> Optional[Dict[str, Any]]:
        ...

    def get_sources(self, artifact: Path) -> List[SourceFile]:
        ...

    def structure_found_creation_code(self, artifact: Path) -> FoundCreationBytecode:
        ...

    def structure_expected_creation_code(self, artifact: Path, found: FoundCreationBytecode,
                                         expected: bytes) -> ExpectedCreationBytecode:
        ...

    def structure_found_deployed_code(self, artifact: Path) -> FoundDeployedBytecode:
        ...

    def structure_expected_deployed_code(self, found: FoundDeployedBytecode,
                                         expected: bytes) -> ExpectedDeployedBytecode:
        ...
