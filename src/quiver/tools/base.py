"""
Result type shared by the built-in effectors.

Effectors are the functions behind tools: they perform the actual file,
process or network operation. The built-in ones return a ToolOutput so that
expected failures (missing file, ambiguous edit, non-zero exit) travel back
to the agent as a descriptive result instead of an exception.

Design Principles:
    - Effectors receive arguments already validated against the schema
    - Expected failures become ToolOutput.fail(), never exceptions
    - A ToolOutput renders to plain text for agents that only take strings
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from quiver.errors import QuiverError


@dataclass(frozen=True)
class ToolOutput:
    """
    Standardized output from an effector.

    Attributes:
        success: Whether the operation succeeded
        data: The payload (type varies by tool)
        error: Error message if success is False
        metadata: Additional details about the execution
    """

    success: bool
    data: Any = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any, **metadata: Any) -> "ToolOutput":
        """Create a successful output."""
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, **metadata: Any) -> "ToolOutput":
        """Create a failed output."""
        return cls(success=False, error=error, metadata=metadata)

    @classmethod
    def from_error(cls, error: QuiverError, **metadata: Any) -> "ToolOutput":
        """Create a failed output from a Quiver exception."""
        return cls.fail(
            error.message,
            error_code=error.code,
            error_type=type(error).__name__,
            **metadata,
        )

    def to_text(self) -> str:
        """Render for an agent: the payload, or the error prefixed with 'Error:'."""
        if not self.success:
            return f"Error: {self.error}"
        if self.data is None:
            return ""
        return self.data if isinstance(self.data, str) else str(self.data)


def resolve_path(path_str: str, working_dir: str) -> Path:
    """
    Resolve a possibly relative path against a working directory.

    Raises:
        ValueError, OSError: If the path cannot be resolved
    """
    path = Path(path_str).expanduser()
    if not path.is_absolute():
        path = Path(working_dir) / path
    return path.resolve()
