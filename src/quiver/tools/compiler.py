"""
Tool compiler for Quiver.

Turns a human-authored declaration into a ToolSpec and publishes it to a
registry. A declaration is an implementation plus a metadata bag:

    compile_tool(
        read_file,
        name="read file",
        description="Read a file, optionally a window of its lines",
        category="filesystem",
        tags=["read"],
        args=[
            {"name": "path", "type": "string", "description": "File to read"},
            OPTIONAL,
            {"name": "offset", "type": "integer", "description": "First line"},
        ],
    )

Parameters after the OPTIONAL marker are optional. Arrays need an "items"
spec, objects need "properties"; both are compiled recursively. Asynchronous
tools (async=True) receive a trailing completion callback when invoked; the
callback is not part of the parameter schema.

Compilation never runs the implementation. Its last steps are publishing
the ToolSpec to the registry and notifying observers, in that order.
"""

import inspect
import logging
import re
from typing import Any, Callable, Iterable, Mapping, TypeVar

from pydantic import ValidationError

from quiver.errors import MalformedDeclarationError
from quiver.schema import (
    META_ASYNC,
    META_CONFIRM,
    META_INCLUDE,
    TOOL_NAME_PATTERN,
    ParameterSpec,
    ParamType,
    ToolSpec,
)
from quiver.tools.registry import ToolRegistry, default_registry

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Marks the start of the optional parameters in a declaration's args list
OPTIONAL = "&optional"

PARAMETER_KEYS = frozenset(
    {"name", "type", "description", "optional", "enum", "items", "properties", "required"}
)

Observer = Callable[[ToolSpec], None]


def normalize_name(name: str) -> str:
    """Turn a human-readable name into an identity token ("read file" -> "read_file")."""
    return re.sub(r"[\s\-]+", "_", name.strip())


def _validation_reason(error: ValidationError) -> str:
    return "; ".join(str(detail["msg"]) for detail in error.errors())


class ToolCompiler:
    """
    Compiles declarations into ToolSpecs and publishes them.

    Observers registered with add_observer() are called synchronously, in
    registration order, after every successful compilation.

    Attributes:
        registry: The registry compiled specs are published to
    """

    def __init__(self, registry: ToolRegistry | None = None) -> None:
        self.registry = registry if registry is not None else default_registry
        self._observers: list[Observer] = []

    def add_observer(self, observer: Observer) -> None:
        """Call observer(spec) after each successful compilation."""
        self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> bool:
        """Stop notifying an observer. Returns False if it was not registered."""
        try:
            self._observers.remove(observer)
        except ValueError:
            return False
        return True

    def compile(
        self,
        function: Callable[..., Any],
        *,
        name: str | None = None,
        identity: str | None = None,
        description: str | None = None,
        args: Iterable[Any] = (),
        category: str | None = None,
        tags: Iterable[str] | str | None = None,
        is_async: bool | None = None,
        confirm: bool | None = None,
        include: bool | None = None,
        metadata: Mapping[str, Any] | None = None,
        **extra: Any,
    ) -> ToolSpec:
        """
        Compile a declaration and publish the result.

        Args:
            function: The implementation (binding)
            name: Human-readable name; defaults to function.__name__
            identity: Explicit identity token; defaults to normalize_name(name)
            description: Defaults to the first paragraph of the docstring
            args: Parameter dicts, optionally split by the OPTIONAL marker
            category: Required unless present in metadata
            tags: Selection tags (a single string is one tag)
            is_async: Binding takes a trailing completion callback
            confirm: Advisory "ask before running" flag
            include: Advisory "show the result" flag
            metadata: Metadata bag; may hold category, tags, async, confirm, include
            **extra: Further metadata keys, passed through verbatim

        Returns:
            The published ToolSpec

        Raises:
            MalformedDeclarationError: If any part of the declaration is ill-formed
        """
        bag: dict[str, Any] = dict(metadata or {})
        bag.update(extra)

        raw_name = name if name is not None else getattr(function, "__name__", "")
        tool_name = identity if identity is not None else normalize_name(str(raw_name))
        if not tool_name or not re.fullmatch(TOOL_NAME_PATTERN, tool_name):
            raise MalformedDeclarationError(
                tool=str(raw_name),
                reason=f"name {tool_name!r} is not a valid identity token "
                "(letters, digits, '_' and '.' only)",
            )

        if not callable(function):
            raise MalformedDeclarationError(
                tool=tool_name,
                reason=f"implementation must be callable, got {type(function).__name__}",
            )

        if category is None:
            category = bag.pop("category", None)
        else:
            bag.pop("category", None)
        if not isinstance(category, str) or not category.strip():
            raise MalformedDeclarationError(tool=tool_name, reason="a non-empty 'category' is required")

        if tags is None:
            tags = bag.pop("tags", ())
        else:
            bag.pop("tags", None)
        tag_list = self._compile_tags(tags, tool_name)

        for key, flag in ((META_ASYNC, is_async), (META_CONFIRM, confirm), (META_INCLUDE, include)):
            if flag is not None:
                bag[key] = flag
            bag[key] = bool(bag.get(key, False))

        if description is None:
            description = self._docstring_summary(function)
        if not isinstance(description, str):
            raise MalformedDeclarationError(tool=tool_name, reason="description must be a string")

        parameters = compile_parameters(args, tool_name)
        self._check_signature(function, len(parameters), bag[META_ASYNC], tool_name)

        try:
            spec = ToolSpec(
                name=tool_name,
                description=description,
                category=category,
                tags=tuple(tag_list),
                parameters=parameters,
                metadata=bag,
                binding=function,
            )
        except ValidationError as e:
            raise MalformedDeclarationError(tool=tool_name, reason=_validation_reason(e)) from e

        previous = self.registry.insert_or_replace(spec)
        if previous is None:
            logger.debug("Registered tool %s (category=%s)", spec.name, spec.category)
        else:
            logger.info("Replaced existing declaration of tool %s", spec.name)

        for observer in list(self._observers):
            observer(spec)

        return spec

    @staticmethod
    def _compile_tags(tags: Iterable[str] | str, tool: str) -> list[str]:
        if isinstance(tags, str):
            return [tags]
        try:
            tag_list = list(tags)
        except TypeError as e:
            raise MalformedDeclarationError(tool=tool, reason="tags must be a list of strings") from e
        for tag in tag_list:
            if not isinstance(tag, str) or not tag:
                raise MalformedDeclarationError(tool=tool, reason=f"invalid tag {tag!r}")
        return tag_list

    @staticmethod
    def _docstring_summary(function: Callable[..., Any]) -> str:
        doc = inspect.getdoc(function)
        if not doc:
            return ""
        return doc.split("\n\n", 1)[0].strip()

    @staticmethod
    def _check_signature(
        function: Callable[..., Any],
        arity: int,
        is_async: bool,
        tool: str,
    ) -> None:
        """Check the binding can be called with the declared positional arguments."""
        try:
            signature = inspect.signature(function)
        except (TypeError, ValueError):
            # Some builtins expose no signature; nothing to check
            return

        expected = arity + (1 if is_async else 0)
        positional = 0
        required = 0
        variadic = False
        for param in signature.parameters.values():
            if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
                positional += 1
                if param.default is param.empty:
                    required += 1
            elif param.kind == param.VAR_POSITIONAL:
                variadic = True
            elif param.kind == param.KEYWORD_ONLY and param.default is param.empty:
                raise MalformedDeclarationError(
                    tool=tool,
                    reason=f"implementation has required keyword-only parameter '{param.name}'",
                )

        callback_note = " (including the completion callback)" if is_async else ""
        if positional < expected and not variadic:
            raise MalformedDeclarationError(
                tool=tool,
                reason=f"implementation accepts {positional} positional arguments "
                f"but {expected} are declared{callback_note}",
            )
        if required > expected:
            raise MalformedDeclarationError(
                tool=tool,
                reason=f"implementation requires {required} positional arguments "
                f"but only {expected} are declared{callback_note}",
            )


def compile_parameters(args: Iterable[Any], tool: str = "") -> tuple[ParameterSpec, ...]:
    """
    Compile a declaration's parameter list.

    Raises:
        MalformedDeclarationError: On a bad marker, ordering, shape or duplicate name
    """
    if isinstance(args, (str, bytes, Mapping)):
        raise MalformedDeclarationError(tool=tool, reason="args must be a list of parameter specs")

    compiled: list[ParameterSpec] = []
    names: set[str] = set()
    marker_seen = False
    seen_optional = False

    for raw in args:
        if isinstance(raw, str) and raw == OPTIONAL:
            if marker_seen:
                raise MalformedDeclarationError(
                    tool=tool,
                    reason=f"the {OPTIONAL} marker may appear only once",
                )
            marker_seen = True
            seen_optional = True
            continue

        param = _compile_parameter(raw, tool, path=None)
        if param.name in names:
            raise MalformedDeclarationError(tool=tool, parameter=param.name, reason="duplicate parameter name")
        names.add(param.name)

        if marker_seen and not param.optional:
            param = param.model_copy(update={"optional": True})
        if param.optional:
            seen_optional = True
        elif seen_optional:
            raise MalformedDeclarationError(
                tool=tool,
                parameter=param.name,
                reason="required parameter declared after an optional one",
            )
        compiled.append(param)

    return tuple(compiled)


def _compile_parameter(raw: Any, tool: str, path: str | None, named: bool = True) -> ParameterSpec:
    """Compile one parameter dict, recursing into items and properties."""
    if not isinstance(raw, Mapping):
        raise MalformedDeclarationError(
            tool=tool,
            parameter=path,
            reason=f"parameter spec must be a mapping, got {type(raw).__name__}",
        )

    name = raw.get("name", "")
    if named and (not isinstance(name, str) or not name):
        raise MalformedDeclarationError(tool=tool, parameter=path, reason="parameter is missing 'name'")
    label = path if path is not None else name

    unknown = sorted(str(key) for key in raw if key not in PARAMETER_KEYS)
    if unknown:
        raise MalformedDeclarationError(
            tool=tool,
            parameter=label,
            reason=f"unknown parameter keys: {', '.join(unknown)}",
        )

    raw_type = raw.get("type")
    if raw_type is None:
        raise MalformedDeclarationError(tool=tool, parameter=label, reason="parameter is missing 'type'")
    try:
        param_type = ParamType(raw_type)
    except ValueError as e:
        valid = ", ".join(t.value for t in ParamType)
        raise MalformedDeclarationError(
            tool=tool,
            parameter=label,
            reason=f"unknown type {raw_type!r}, expected one of: {valid}",
        ) from e

    items = None
    if raw.get("items") is not None:
        items = _compile_parameter(raw["items"], tool, f"{label}[]", named=False)

    properties = None
    if raw.get("properties") is not None:
        if not isinstance(raw["properties"], Mapping):
            raise MalformedDeclarationError(tool=tool, parameter=label, reason="'properties' must be a mapping")
        properties = {}
        for key, value in raw["properties"].items():
            member_path = f"{label}.{key}"
            if not isinstance(value, Mapping):
                raise MalformedDeclarationError(
                    tool=tool,
                    parameter=member_path,
                    reason=f"parameter spec must be a mapping, got {type(value).__name__}",
                )
            properties[str(key)] = _compile_parameter({**value, "name": str(key)}, tool, member_path)

    enum = _string_tuple(raw.get("enum"), "enum", tool, label)
    required = _string_tuple(raw.get("required"), "required", tool, label)

    try:
        return ParameterSpec(
            name=name if isinstance(name, str) else "",
            type=param_type,
            description=str(raw.get("description") or ""),
            optional=bool(raw.get("optional", False)),
            enum=tuple(dict.fromkeys(enum)) if enum is not None else None,
            items=items,
            properties=properties,
            required=required,
        )
    except ValidationError as e:
        raise MalformedDeclarationError(tool=tool, parameter=label, reason=_validation_reason(e)) from e


def _string_tuple(value: Any, key: str, tool: str, label: str) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, (str, bytes, Mapping)):
        raise MalformedDeclarationError(tool=tool, parameter=label, reason=f"'{key}' must be a list")
    try:
        return tuple(str(item) for item in value)
    except TypeError as e:
        raise MalformedDeclarationError(tool=tool, parameter=label, reason=f"'{key}' must be a list") from e


# Compiler bound to the default registry
default_compiler = ToolCompiler(default_registry)


def compile_tool(
    function: Callable[..., Any],
    *,
    compiler: ToolCompiler | None = None,
    **declaration: Any,
) -> ToolSpec:
    """
    Compile a declaration with the given compiler (default: default_compiler).

    See ToolCompiler.compile for the declaration keywords.
    """
    return (compiler or default_compiler).compile(function, **declaration)


def tool(*, compiler: ToolCompiler | None = None, **declaration: Any) -> Callable[[F], F]:
    """
    Decorator form of compile_tool. The function itself is returned unchanged.

    Example:
        @tool(category="text", args=[{"name": "text", "type": "string"}])
        def word_count(text):
            return str(len(text.split()))
    """

    def decorator(function: F) -> F:
        compile_tool(function, compiler=compiler, **declaration)
        return function

    return decorator
