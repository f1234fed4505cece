"""
Filesystem effectors for Quiver.

This module provides the built-in file tools (category "filesystem"):
- read_file: Read a file, optionally a window of its lines
- write_file: Write content to a file
- edit_file: Replace one unique occurrence of a string in a file
- list_directory: List directory entries
- search_file: Regex search over a file's lines

Relative paths resolve against the configured working directory. Nothing
here restricts which paths may be touched; the confirm flag on the writing
tools is advisory metadata for the host.
"""

import functools
from pathlib import Path
from typing import Any, Callable

from quiver.errors import QuiverError
from quiver.schema import QuiverConfig, ToolSpec
from quiver.text import extract_window, replace_unique, search_lines, split_lines
from quiver.tools.base import ToolOutput, resolve_path
from quiver.tools.compiler import OPTIONAL, ToolCompiler, default_compiler

CATEGORY = "filesystem"


def _reports_failures(method: Callable[..., ToolOutput]) -> Callable[..., ToolOutput]:
    """Turn expected exceptions into failed ToolOutputs."""

    @functools.wraps(method)
    def wrapper(*args: Any) -> ToolOutput:
        try:
            return method(*args)
        except QuiverError as e:
            return ToolOutput.from_error(e)
        except FileNotFoundError as e:
            return ToolOutput.fail(f"File not found: {e.filename}")
        except PermissionError as e:
            return ToolOutput.fail(f"Permission denied: {e.filename}")
        except UnicodeDecodeError as e:
            return ToolOutput.fail(f"Encoding error: {e}. Only UTF-8 text files are supported.")
        except (OSError, ValueError) as e:
            return ToolOutput.fail(f"{type(e).__name__}: {e}")

    return wrapper


class FilesystemEffectors:
    """
    File operations bound to a working directory.

    Attributes:
        working_dir: Base directory for relative paths
        encoding: Text encoding used for reads and writes
    """

    def __init__(self, working_dir: str = ".", encoding: str = "utf-8") -> None:
        self.working_dir = working_dir
        self.encoding = encoding

    def _file(self, path_str: str) -> Path:
        path = resolve_path(path_str, self.working_dir)
        if not path.exists():
            raise FileNotFoundError(2, "No such file", path_str)
        if not path.is_file():
            msg = f"Not a file: {path_str}"
            raise IsADirectoryError(msg)
        return path

    @_reports_failures
    def read_file(self, path: str, offset: int | None = None, limit: int | None = None) -> ToolOutput:
        """Read a file, optionally only `limit` lines starting at line `offset` (0-based)."""
        file_path = self._file(path)
        lines = split_lines(file_path.read_text(encoding=self.encoding))
        content = extract_window(lines, offset or 0, limit)
        return ToolOutput.ok(content, path=str(file_path), total_lines=len(lines))

    @_reports_failures
    def write_file(self, path: str, content: str, create_dirs: bool | None = None) -> ToolOutput:
        """Create or overwrite a file with the given content."""
        file_path = resolve_path(path, self.working_dir)
        if create_dirs:
            file_path.parent.mkdir(parents=True, exist_ok=True)
        if not file_path.parent.is_dir():
            return ToolOutput.fail(f"Parent directory does not exist: {file_path.parent}")
        file_path.write_text(content, encoding=self.encoding)
        size = len(content.encode(self.encoding))
        return ToolOutput.ok(f"Wrote {size} bytes to {path}", path=str(file_path), size=size)

    @_reports_failures
    def edit_file(self, path: str, old_string: str, new_string: str) -> ToolOutput:
        """Replace the single occurrence of old_string with new_string."""
        file_path = self._file(path)
        original = file_path.read_text(encoding=self.encoding)
        updated = replace_unique(original, old_string, new_string)
        file_path.write_text(updated, encoding=self.encoding)
        return ToolOutput.ok(f"Edited {path}: replaced 1 occurrence", path=str(file_path))

    @_reports_failures
    def list_directory(self, path: str) -> ToolOutput:
        """List a directory; subdirectories end with '/'."""
        dir_path = resolve_path(path, self.working_dir)
        if not dir_path.is_dir():
            return ToolOutput.fail(f"Not a directory: {path}", path=str(dir_path))
        entries = sorted(
            entry.name + "/" if entry.is_dir() else entry.name
            for entry in dir_path.iterdir()
        )
        return ToolOutput.ok("\n".join(entries), path=str(dir_path), count=len(entries))

    @_reports_failures
    def search_file(self, path: str, pattern: str) -> ToolOutput:
        """Report the lines of a file matching a regular expression."""
        file_path = self._file(path)
        hits = search_lines(file_path.read_text(encoding=self.encoding), pattern)
        rendered = "\n".join(f"{number}: {line}" for number, line in hits)
        return ToolOutput.ok(rendered, path=str(file_path), matches=len(hits))


def register_fs_tools(
    compiler: ToolCompiler | None = None,
    config: QuiverConfig | None = None,
) -> list[ToolSpec]:
    """Compile the filesystem tools into the compiler's registry."""
    compiler = compiler or default_compiler
    config = config or QuiverConfig()
    fs = FilesystemEffectors(config.working_dir)

    path_arg = {"name": "path", "type": "string", "description": "Path to the file"}
    return [
        compiler.compile(
            fs.read_file,
            description="Read a text file. Use offset/limit to read a window of lines.",
            category=CATEGORY,
            tags=["read"],
            args=[
                path_arg,
                OPTIONAL,
                {"name": "offset", "type": "integer", "description": "First line to read, 0-based"},
                {"name": "limit", "type": "integer", "description": "Maximum number of lines"},
            ],
        ),
        compiler.compile(
            fs.write_file,
            description="Create or overwrite a text file.",
            category=CATEGORY,
            tags=["write"],
            confirm=True,
            args=[
                path_arg,
                {"name": "content", "type": "string", "description": "Full new file content"},
                OPTIONAL,
                {"name": "create_dirs", "type": "boolean", "description": "Create missing parent directories"},
            ],
        ),
        compiler.compile(
            fs.edit_file,
            description="Replace one exact occurrence of a string in a file. "
            "Fails if the string is missing or occurs more than once.",
            category=CATEGORY,
            tags=["write", "edit"],
            confirm=True,
            args=[
                path_arg,
                {"name": "old_string", "type": "string", "description": "Exact text to replace"},
                {"name": "new_string", "type": "string", "description": "Replacement text"},
            ],
        ),
        compiler.compile(
            fs.list_directory,
            description="List the entries of a directory.",
            category=CATEGORY,
            tags=["read"],
            args=[{"name": "path", "type": "string", "description": "Directory to list"}],
        ),
        compiler.compile(
            fs.search_file,
            description="Find the lines of a file matching a regular expression (case-sensitive).",
            category=CATEGORY,
            tags=["read", "search"],
            args=[
                path_arg,
                {"name": "pattern", "type": "string", "description": "Regular expression"},
            ],
        ),
    ]
