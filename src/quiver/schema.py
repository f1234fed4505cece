"""
Schema definitions for Quiver.

This module defines the Pydantic models used throughout Quiver:
- ParameterSpec: One typed, documented tool parameter (recursive)
- ToolSpec: A compiled tool, as indexed by the registry
- QuiverConfig: Runtime configuration for the built-in effectors

Design Decisions:
    - Models are frozen; a ToolSpec is published whole and never mutated
    - Shape invariants (items/properties/required) live on the models so
      directly constructed specs are checked the same way compiled ones are
    - The binding is carried on ToolSpec but excluded from serialization
"""

from enum import Enum
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from quiver.errors import ConfigError


# =============================================================================
# Enums
# =============================================================================


class ParamType(str, Enum):
    """JSON types a tool parameter may declare."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    NULL = "null"


# Metadata keys with a meaning of their own; everything else is passed through
META_ASYNC = "async"
META_CONFIRM = "confirm"
META_INCLUDE = "include"

TOOL_NAME_PATTERN = r"^[A-Za-z0-9_.]+$"


# =============================================================================
# Tool Models
# =============================================================================


class ParameterSpec(BaseModel):
    """
    A single tool parameter.

    Attributes:
        name: Parameter name (property key for nested specs, may be empty for array items)
        type: JSON type of the value
        description: Human-readable description shown to the agent
        optional: Whether the agent may omit the parameter
        enum: Allowed values, in declaration order
        items: Element spec, present iff type is array
        properties: Member specs, present iff type is object
        required: Names of required members, a subset of properties
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="", description="Parameter name")
    type: ParamType = Field(..., description="JSON type of the value")
    description: str = Field(default="", description="Description shown to the agent")
    optional: bool = Field(default=False, description="Whether the parameter may be omitted")
    enum: tuple[str, ...] | None = Field(default=None, description="Allowed values")
    items: "ParameterSpec | None" = Field(default=None, description="Element spec for arrays")
    properties: "dict[str, ParameterSpec] | None" = Field(
        default=None,
        description="Member specs for objects",
    )
    required: tuple[str, ...] | None = Field(
        default=None,
        description="Required member names for objects",
    )

    @model_validator(mode="after")
    def check_shape(self) -> "ParameterSpec":
        """Enforce the items/properties/required invariants."""
        if self.type == ParamType.ARRAY and self.items is None:
            msg = "array parameters require 'items'"
            raise ValueError(msg)
        if self.type != ParamType.ARRAY and self.items is not None:
            msg = "'items' is only allowed when type is array"
            raise ValueError(msg)
        if self.type == ParamType.OBJECT and self.properties is None:
            msg = "object parameters require 'properties'"
            raise ValueError(msg)
        if self.type != ParamType.OBJECT and self.properties is not None:
            msg = "'properties' is only allowed when type is object"
            raise ValueError(msg)
        if self.required is not None:
            if self.properties is None:
                msg = "'required' is only allowed alongside 'properties'"
                raise ValueError(msg)
            unknown = [key for key in self.required if key not in self.properties]
            if unknown:
                msg = f"'required' names unknown properties: {', '.join(unknown)}"
                raise ValueError(msg)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible data, omitting unset fields."""
        return self.model_dump(mode="json", exclude_none=True)


class ToolSpec(BaseModel):
    """
    A compiled tool.

    ToolSpecs are produced by the compiler and published to a registry.
    Identity is the name: a registry holds at most one spec per name.

    Attributes:
        name: Token-safe external name, used as the registry key
        description: What the tool does, shown to the agent
        category: Grouping used by consumers to select tools
        tags: Additional labels for selection, de-duplicated and ordered
        parameters: Required parameters first, then optional ones
        metadata: Extension keys (async, confirm, include, anything else)
        binding: The callable that implements the tool
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., pattern=TOOL_NAME_PATTERN, description="External name")
    description: str = Field(default="", description="What the tool does")
    category: str = Field(..., min_length=1, description="Tool category")
    tags: tuple[str, ...] = Field(default=(), description="Selection tags")
    parameters: tuple[ParameterSpec, ...] = Field(default=(), description="Ordered parameters")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Extension keys")
    binding: Callable[..., Any] = Field(..., exclude=True, repr=False)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Drop repeated tags, keeping first occurrence order."""
        return tuple(dict.fromkeys(v))

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        """Reject whitespace-only categories."""
        if not v.strip():
            msg = "category must not be blank"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def check_parameter_order(self) -> "ToolSpec":
        """All optional parameters must follow all required ones."""
        seen_optional = False
        for param in self.parameters:
            if param.optional:
                seen_optional = True
            elif seen_optional:
                msg = f"required parameter '{param.name}' follows an optional parameter"
                raise ValueError(msg)
        return self

    @property
    def is_async(self) -> bool:
        """Whether the binding reports its result through a callback."""
        return bool(self.metadata.get(META_ASYNC, False))

    @property
    def requires_confirmation(self) -> bool:
        """Advisory flag: the host should ask before running this tool."""
        return bool(self.metadata.get(META_CONFIRM, False))

    @property
    def include_result(self) -> bool:
        """Advisory flag: the host should show the result to the user."""
        return bool(self.metadata.get(META_INCLUDE, False))

    @property
    def required_parameters(self) -> tuple[ParameterSpec, ...]:
        """Parameters the agent must supply."""
        return tuple(p for p in self.parameters if not p.optional)

    @property
    def optional_parameters(self) -> tuple[ParameterSpec, ...]:
        """Parameters the agent may omit."""
        return tuple(p for p in self.parameters if p.optional)


# =============================================================================
# Configuration Models
# =============================================================================


class ShellSettings(BaseModel):
    """
    Settings for the run_command effector.

    Attributes:
        timeout_seconds: Process timeout; the process is killed afterwards
        max_output_bytes: Maximum combined stdout/stderr size kept
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_seconds: int = Field(default=60, gt=0, le=3600)
    max_output_bytes: int = Field(default=1024 * 1024, gt=0)  # 1 MB


class HttpSettings(BaseModel):
    """Settings for the fetch_url effector."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_seconds: float = Field(default=30, gt=0, le=300)
    max_response_bytes: int = Field(default=2 * 1024 * 1024, gt=0)  # 2 MB


class QuiverConfig(BaseModel):
    """
    Complete runtime configuration.

    Attributes:
        working_dir: Base directory for relative paths used by effectors
        log_level: Logging level name passed to configure_logging
        shell: Settings for command execution
        http: Settings for URL fetching
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    working_dir: str = Field(default=".", description="Base directory for relative paths")
    log_level: str = Field(default="WARNING", description="Logging level name")
    shell: ShellSettings = Field(default_factory=ShellSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept standard logging level names, case-insensitively."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {v}"
            raise ValueError(msg)
        return level


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_config(path: Path | str) -> QuiverConfig:
    """
    Load configuration from a YAML file.

    An empty file yields the default configuration.

    Raises:
        ConfigError: If the file is unreadable, not YAML, or fails validation
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(path=str(path), reason=str(e)) from e
    return _parse_config(content, str(path))


def load_config_from_string(content: str) -> QuiverConfig:
    """Load configuration from a YAML string."""
    return _parse_config(content, "")


def _parse_config(content: str, source: str) -> QuiverConfig:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(path=source, reason=str(e)) from e

    if data is None:
        return QuiverConfig()
    if not isinstance(data, dict):
        raise ConfigError(path=source, reason="top level must be a mapping")

    try:
        return QuiverConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(path=source, reason=str(e)) from e
