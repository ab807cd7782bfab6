"""Typed schema for compiler artifact JSON, validated once at load time."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from eth_utils import decode_hex
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..bytecode.models import ImmutableRange, ImmutableReferences
from ..errors import ArtifactReadError

logger = logging.getLogger(__name__)

# solc leaves `__$<hash>$__` placeholders where library addresses go.
UNLINKED_LIBRARY_MARKER = "__$"


def decode_bytecode_object(value: Optional[str]) -> bytes:
    """
    Decode a hex bytecode string from an artifact.

    Args:
        value: Hex string, with or without 0x prefix; empty for interfaces

    Returns:
        Decoded bytes

    Raises:
        ValueError: If the code contains unlinked library placeholders or is not hex
    """
    if not value:
        return b""
    if UNLINKED_LIBRARY_MARKER in value:
        raise ValueError("Linked libraries are not supported")
    return decode_hex(value)


class _ArtifactModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ImmutableReferenceEntry(_ArtifactModel):
    start: int = Field(ge=0)
    length: int = Field(ge=0)


class BytecodeObject(_ArtifactModel):
    object: bytes = b""

    @field_validator("object", mode="before")
    @classmethod
    def _decode_object(cls, value: Any) -> bytes:
        if isinstance(value, bytes):
            return value
        return decode_bytecode_object(value)


class DeployedBytecodeObject(BytecodeObject):
    immutable_references: Dict[str, List[ImmutableReferenceEntry]] = Field(
        default_factory=dict, alias="immutableReferences"
    )

    def to_immutable_references(self) -> ImmutableReferences:
        return {
            name: [ImmutableRange(start=e.start, length=e.length) for e in entries]
            for name, entries in self.immutable_references.items()
        }


class NestedMetadataSettings(_ArtifactModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    bytecode_hash: Optional[str] = Field(default=None, alias="bytecodeHash")
    append_cbor: Optional[bool] = Field(default=None, alias="appendCBOR")


class MetadataSettings(_ArtifactModel):
    """
    Compiler metadata settings.

    solc nests `bytecodeHash`/`appendCBOR` under `settings.metadata`; some
    tooling flattens them onto `settings` directly. Both shapes are read,
    the flat one taking precedence. Settings not modelled here are kept so
    the full compiler configuration can be reported.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    bytecode_hash: Optional[str] = Field(default=None, alias="bytecodeHash")
    append_cbor: Optional[bool] = Field(default=None, alias="appendCBOR")
    compilation_target: Dict[str, str] = Field(default_factory=dict, alias="compilationTarget")
    metadata: Optional[NestedMetadataSettings] = None

    @property
    def effective_bytecode_hash(self) -> Optional[str]:
        if self.bytecode_hash is not None:
            return self.bytecode_hash
        return self.metadata.bytecode_hash if self.metadata else None

    @property
    def effective_append_cbor(self) -> Optional[bool]:
        if self.append_cbor is not None:
            return self.append_cbor
        return self.metadata.append_cbor if self.metadata else None

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


class CompilerVersion(_ArtifactModel):
    version: str = ""


class ArtifactMetadata(_ArtifactModel):
    compiler: CompilerVersion = Field(default_factory=CompilerVersion)
    language: str = ""
    settings: MetadataSettings = Field(default_factory=MetadataSettings)
    sources: Dict[str, Any] = Field(default_factory=dict)


class CompilerArtifact(_ArtifactModel):
    """One compiled contract as written to the build output directory."""

    abi: List[Dict[str, Any]] = Field(default_factory=list)
    bytecode: BytecodeObject = Field(default_factory=BytecodeObject)
    deployed_bytecode: DeployedBytecodeObject = Field(
        default_factory=DeployedBytecodeObject, alias="deployedBytecode"
    )
    metadata: Optional[ArtifactMetadata] = None

    @property
    def settings(self) -> MetadataSettings:
        return self.metadata.settings if self.metadata else MetadataSettings()

    @property
    def root_source(self) -> Optional[str]:
        """Source file of the compiled contract itself, from `compilationTarget`."""
        return next(iter(self.settings.compilation_target), None)

    @property
    def source_paths(self) -> List[str]:
        return list(self.metadata.sources.keys()) if self.metadata else []


class BuildInfoSource(_ArtifactModel):
    content: str = ""


class BuildInfoInput(_ArtifactModel):
    sources: Dict[str, BuildInfoSource] = Field(default_factory=dict)


class BuildInfo(_ArtifactModel):
    """Compiler input written by `forge build --build-info`, with every source inlined."""

    id: str = ""
    input: BuildInfoInput = Field(default_factory=BuildInfoInput)


def _read_json_object(path: Path, kind: str) -> Dict[str, Any]:
    try:
        content = Path(path).read_text(encoding="utf-8")
        data = json.loads(content)
    except (OSError, json.JSONDecodeError) as e:
        raise ArtifactReadError(f"Could not read {kind} {path}: {e}") from e

    if not isinstance(data, dict):
        raise ArtifactReadError(f"{kind.capitalize()} {path} is not a JSON object")
    return data


def load_artifact(path: Path) -> CompilerArtifact:
    """
    Read and validate an artifact file.

    Raises:
        ArtifactReadError: If the file cannot be read or does not match the schema
    """
    data = _read_json_object(path, "artifact")
    try:
        return CompilerArtifact.model_validate(data)
    except ValidationError as e:
        raise ArtifactReadError(f"Invalid artifact {path}: {e}") from e


def load_build_info(path: Path) -> BuildInfo:
    """
    Read and validate a build info file.

    Raises:
        ArtifactReadError: If the file cannot be read or does not match the schema
    """
    data = _read_json_object(path, "build info")
    try:
        return BuildInfo.model_validate(data)
    except ValidationError as e:
        raise ArtifactReadError(f"Invalid build info {path}: {e}") from e
