"""
Exception hierarchy for Quiver.

All Quiver exceptions inherit from QuiverError, allowing callers to catch
every Quiver-specific failure with a single except clause.

Exception Categories:
    - DeclarationError: A tool declaration, manifest or config is ill-formed
    - ToolError: Lookup, argument or effector failure around an invocation
    - TextError: Domain errors from the text primitives (always recoverable)

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (tool, parameter, pattern where applicable)
    - Messages say what was searched, matched or expected so an agent can retry
    - Errors are designed to be both human-readable and machine-parseable
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Declaration errors: 1xxx
ERROR_MALFORMED_DECLARATION = 1001
ERROR_MANIFEST_INVALID = 1002
ERROR_CONFIG_INVALID = 1003

# Tool errors: 2xxx
ERROR_TOOL_NOT_FOUND = 2001
ERROR_INVALID_ARGUMENT = 2002
ERROR_EFFECTOR_FAILURE = 2003

# Text errors: 3xxx
ERROR_MATCH_NOT_FOUND = 3001
ERROR_AMBIGUOUS_MATCH = 3002
ERROR_EMPTY_PATTERN = 3003
ERROR_INVALID_PATTERN = 3004
ERROR_OUT_OF_RANGE = 3005


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class QuiverError(Exception):
    """
    Base exception for all Quiver errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Declaration Errors
# =============================================================================


@dataclass
class DeclarationError(QuiverError):
    """
    Base class for load-time errors.

    Raised while turning declarations, manifests or configuration into
    runtime objects. A declaration error aborts only the declaration that
    caused it.
    """


@dataclass
class MalformedDeclarationError(DeclarationError):
    """
    Raised when a tool declaration cannot be compiled.

    Attributes:
        tool: Identity (or raw name) of the tool being declared
        parameter: Dotted path of the offending parameter, if any
        reason: What was wrong with the declaration
    """

    tool: str = ""
    parameter: str | None = None
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            where = f" (parameter '{self.parameter}')" if self.parameter else ""
            self.message = f"Malformed declaration for {self.tool or '<unnamed>'}{where}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_MALFORMED_DECLARATION
        self.context.update({
            "tool": self.tool,
            "parameter": self.parameter,
            "reason": self.reason,
        })


@dataclass
class ManifestError(DeclarationError):
    """Raised when a declaration manifest cannot be read or validated."""

    path: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid tool manifest {self.path}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_MANIFEST_INVALID
        self.context.update({"path": self.path, "reason": self.reason})


@dataclass
class ConfigError(DeclarationError):
    """Raised when a configuration file cannot be read or validated."""

    path: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration {self.path or '<string>'}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        if not self.suggestion:
            self.suggestion = "Check the YAML syntax and field names against QuiverConfig"
        self.context.update({"path": self.path, "reason": self.reason})


# =============================================================================
# Tool Errors
# =============================================================================


@dataclass
class ToolError(QuiverError):
    """
    Base class for invocation-time errors.

    Attributes:
        tool: Name of the tool involved
        tool_args: Arguments that were provided
    """

    tool: str = ""
    tool_args: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "tool": self.tool,
            "tool_args": self.tool_args,
        })


@dataclass
class ToolNotFoundError(ToolError):
    """Raised when a tool is not registered."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Tool not found: {self.tool}"
        if self.code == 0:
            self.code = ERROR_TOOL_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Check tool name spelling or declare the tool"
        super().__post_init__()


@dataclass
class InvalidArgumentError(ToolError):
    """Raised when invocation arguments fail the compiled parameter schema."""

    validation_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid arguments for {self.tool}: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_INVALID_ARGUMENT
        super().__post_init__()
        self.context["validation_error"] = self.validation_error


@dataclass
class EffectorFailureError(ToolError):
    """Raised when the operation behind a tool fails unexpectedly."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Tool {self.tool} failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_EFFECTOR_FAILURE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Text Errors
# =============================================================================


@dataclass
class TextError(QuiverError):
    """
    Base class for text primitive errors.

    These are always recoverable: the caller reports them back to the
    agent, which can adjust its arguments and try again.
    """


@dataclass
class MatchNotFoundError(TextError):
    """Raised when a literal string or pattern does not occur in the text."""

    pattern: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"No match found for {self.pattern!r}"
        if self.code == 0:
            self.code = ERROR_MATCH_NOT_FOUND
        self.context["pattern"] = self.pattern


@dataclass
class AmbiguousMatchError(TextError):
    """Raised when a string expected to be unique occurs several times."""

    pattern: str = ""
    count: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Found {self.count} matches for {self.pattern!r}, expected exactly one"
        if self.code == 0:
            self.code = ERROR_AMBIGUOUS_MATCH
        if not self.suggestion:
            self.suggestion = "Include more surrounding context so the text is unique"
        self.context.update({"pattern": self.pattern, "count": self.count})


@dataclass
class EmptyPatternError(TextError):
    """Raised when the string to replace is empty."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "The text to replace must not be empty"
        if self.code == 0:
            self.code = ERROR_EMPTY_PATTERN


@dataclass
class InvalidPatternError(TextError):
    """Raised when a search pattern is not a valid regular expression."""

    pattern: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid regular expression {self.pattern!r}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_INVALID_PATTERN
        self.context.update({"pattern": self.pattern, "reason": self.reason})


@dataclass
class OutOfRangeError(TextError):
    """Raised when a line window falls outside the source."""

    offset: int = 0
    limit: int | None = None
    total: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Line window out of range: offset={self.offset}, "
                f"limit={self.limit}, total lines={self.total}"
            )
        if self.code == 0:
            self.code = ERROR_OUT_OF_RANGE
        self.context.update({
            "offset": self.offset,
            "limit": self.limit,
            "total": self.total,
        })
