"""Build framework abstraction and implementations."""

from pathlib import Path
from typing import List, Type

from ..errors import UnsupportedFrameworkError
from .artifacts import CompilerArtifact, MetadataSettings, load_artifact, load_build_info
from .base import BuildCommand, Framework, SourceFile
from .foundry import Foundry

FRAMEWORKS: List[Type] = [Foundry]


def detect_framework(path: Path) -> Framework:
    """
    Instantiate the first registered framework that supports `path`.

    Raises:
        UnsupportedFrameworkError: If no registered framework supports the project
    """
    for framework_cls in FRAMEWORKS:
        if framework_cls.is_supported(path):
            return framework_cls(path)
    supported = ", ".join(cls.__name__ for cls in FRAMEWORKS)
    raise UnsupportedFrameworkError(f"Unsupported project at {path}; supported frameworks: {supported}")


__all__ = [
    "BuildCommand",
    "CompilerArtifact",
    "FRAMEWORKS",
    "Foundry",
    "Framework",
    "MetadataSettings",
    "SourceFile",
    "detect_framework",
    "load_artifact",
    "load_build_info",
]
