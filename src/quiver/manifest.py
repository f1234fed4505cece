"""
Declaration manifests for Quiver.

A manifest is a YAML file that declares tools whose implementations live in
importable modules:

    version: "1.0"
    tools:
      - name: word count
        function: mypackage.effectors:word_count
        description: Count the words in a text
        category: text
        tags: [count]
        args:
          - {name: text, type: string, description: Text to count}
          - "&optional"
          - {name: unique, type: boolean, description: Count distinct words only}

Each entry is validated and compiled on its own. A malformed entry aborts
only its own registration: the error is logged and collected in the
result, and the remaining entries still load.
"""

import importlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from quiver.errors import MalformedDeclarationError, ManifestError
from quiver.schema import ToolSpec
from quiver.tools.compiler import ToolCompiler, default_compiler

logger = logging.getLogger(__name__)


# =============================================================================
# Manifest Models
# =============================================================================


class ToolManifestEntry(BaseModel):
    """
    One tool declaration in a manifest.

    Attributes:
        name: Human-readable name; normalized into the identity token
        function: Import reference of the implementation, "module:attribute"
        description: Defaults to the implementation's docstring summary
        category: Tool category (required by the compiler)
        tags: Selection tags
        is_async: Implementation takes a trailing completion callback (YAML key "async")
        confirm: Advisory confirmation flag
        include: Advisory result-inclusion flag

        The three flags default to None so the same keys under metadata apply.
        args: Parameter specs, optionally split by "&optional"
        metadata: Extra metadata keys passed through verbatim
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    name: str = Field(..., min_length=1)
    function: str = Field(..., description="Implementation reference, module:attribute")
    description: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    is_async: bool | None = Field(default=None, alias="async")
    confirm: bool | None = None
    include: bool | None = None
    args: list[Any] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("function")
    @classmethod
    def validate_function_ref(cls, v: str) -> str:
        """Require the module:attribute form."""
        module, _, attribute = v.partition(":")
        if not module or not attribute:
            msg = f"function must look like 'package.module:attribute', got {v!r}"
            raise ValueError(msg)
        return v


class ToolManifest(BaseModel):
    """
    Top level of a manifest file.

    Entries stay raw here so that one bad entry cannot reject the others.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = Field(default="1.0")
    tools: list[Any] = Field(default_factory=list)


@dataclass
class ManifestLoadResult:
    """
    Outcome of loading a manifest.

    Attributes:
        source: Path (or "<string>") the manifest came from
        specs: Specs that compiled and were published, in manifest order
        failures: One error per entry that was rejected
    """

    source: str
    specs: list[ToolSpec] = field(default_factory=list)
    failures: list[MalformedDeclarationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether every entry loaded."""
        return not self.failures


# =============================================================================
# Loading
# =============================================================================


def resolve_function(reference: str) -> Callable[..., Any]:
    """
    Import "package.module:attr.subattr" and return the object.

    Raises:
        ImportError, AttributeError: If the module or attribute is missing
    """
    module_name, _, attribute_path = reference.partition(":")
    target: Any = importlib.import_module(module_name)
    for attribute in attribute_path.split("."):
        target = getattr(target, attribute)
    return target


def _compile_entry(raw: Any, index: int, compiler: ToolCompiler) -> ToolSpec:
    label = raw.get("name", f"tools[{index}]") if isinstance(raw, dict) else f"tools[{index}]"
    try:
        entry = ToolManifestEntry.model_validate(raw)
    except ValidationError as e:
        reason = "; ".join(str(detail["msg"]) for detail in e.errors())
        raise MalformedDeclarationError(tool=str(label), reason=reason) from e

    try:
        function = resolve_function(entry.function)
    except (ImportError, AttributeError) as e:
        raise MalformedDeclarationError(
            tool=entry.name,
            reason=f"cannot import implementation {entry.function!r}: {e}",
        ) from e

    return compiler.compile(
        function,
        name=entry.name,
        description=entry.description,
        category=entry.category,
        tags=entry.tags,
        is_async=entry.is_async,
        confirm=entry.confirm,
        include=entry.include,
        args=entry.args,
        metadata=entry.metadata,
    )


def load_manifest_from_string(
    content: str,
    compiler: ToolCompiler | None = None,
    strict: bool = False,
    source: str = "<string>",
) -> ManifestLoadResult:
    """
    Compile every tool declared in a YAML manifest string.

    Args:
        content: Manifest YAML
        compiler: Compiler to publish through (default: default_compiler)
        strict: Raise ManifestError if any entry failed (after trying all)
        source: Name used in messages

    Returns:
        ManifestLoadResult with the published specs and per-entry failures

    Raises:
        ManifestError: If the document is not a valid manifest, or strict and an entry failed
    """
    compiler = compiler or default_compiler
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ManifestError(path=source, reason=f"invalid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ManifestError(path=source, reason="top level must be a mapping")
    try:
        manifest = ToolManifest.model_validate(data)
    except ValidationError as e:
        raise ManifestError(path=source, reason=str(e)) from e

    result = ManifestLoadResult(source=source)
    for index, raw in enumerate(manifest.tools):
        try:
            result.specs.append(_compile_entry(raw, index, compiler))
        except MalformedDeclarationError as e:
            logger.error("Skipping tool from %s: %s", source, e.message)
            result.failures.append(e)

    if strict and result.failures:
        names = ", ".join(failure.tool or "<unnamed>" for failure in result.failures)
        raise ManifestError(path=source, reason=f"{len(result.failures)} tool(s) failed to load: {names}")
    return result


def load_manifest(
    path: Path | str,
    compiler: ToolCompiler | None = None,
    strict: bool = False,
) -> ManifestLoadResult:
    """
    Compile every tool declared in a YAML manifest file.

    Raises:
        ManifestError: If the file is unreadable or invalid, or strict and an entry failed
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(path=str(path), reason=str(e)) from e
    return load_manifest_from_string(content, compiler, strict=strict, source=str(path))
