"""
Tools module for Quiver.

This module provides the declaration, indexing and invocation machinery
for agent tools, plus a small set of built-in effectors.

Architecture:
    - ToolCompiler / compile_tool / tool: Turn declarations into ToolSpecs
    - ToolRegistry: Ordered index of ToolSpecs by name, category and tag
    - invoke / invoke_future: Call a ToolSpec's binding with agent arguments
    - ToolOutput: Result type returned by the built-in effectors

Built-in tools are NOT registered on import. Call register_builtin_tools()
to compile them into a registry:
    - filesystem: read_file, write_file, edit_file, list_directory, search_file
    - command: run_command (asynchronous)
    - web: fetch_url
"""

from quiver.schema import QuiverConfig, ToolSpec
from quiver.tools.base import ToolOutput
from quiver.tools.compiler import (
    OPTIONAL,
    ToolCompiler,
    compile_tool,
    default_compiler,
    normalize_name,
    tool,
)
from quiver.tools.dispatch import invoke, invoke_future, validate_arguments
from quiver.tools.fs import register_fs_tools
from quiver.tools.http import register_http_tools
from quiver.tools.registry import (
    ToolRegistry,
    default_registry,
    get_all,
    get_by_category,
    get_by_tag,
    get_tool,
)
from quiver.tools.shell import register_shell_tools


def register_builtin_tools(
    config: QuiverConfig | None = None,
    compiler: ToolCompiler | None = None,
) -> list[ToolSpec]:
    """Compile every built-in tool; returns the ToolSpecs in registration order."""
    config = config or QuiverConfig()
    compiler = compiler or default_compiler
    return [
        *register_fs_tools(compiler, config),
        *register_shell_tools(compiler, config),
        *register_http_tools(compiler, config),
    ]


__all__ = [
    "OPTIONAL",
    "ToolCompiler",
    "ToolOutput",
    "ToolRegistry",
    "compile_tool",
    "default_compiler",
    "default_registry",
    "get_all",
    "get_by_category",
    "get_by_tag",
    "get_tool",
    "invoke",
    "invoke_future",
    "normalize_name",
    "register_builtin_tools",
    "register_fs_tools",
    "register_http_tools",
    "register_shell_tools",
    "tool",
    "validate_arguments",
]
