"""
CLI entry point for Quiver.

This module provides the Typer-based command-line interface for Quiver.

Commands:
    tools       List declared tools, optionally filtered by category or tag
    schema      Print the capability schema of declared tools as JSON
    invoke      Invoke one tool with JSON arguments

Every command builds its own registry from the built-in tools (unless
--no-builtins) plus any --manifest files, so nothing depends on state left
behind by an earlier command.
"""

import json
import traceback
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Annotated, Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from quiver import __version__
from quiver.errors import QuiverError
from quiver.export import EXPORT_FORMATS, dump_capabilities
from quiver.log import configure_logging
from quiver.manifest import load_manifest
from quiver.schema import QuiverConfig, ToolSpec, load_config
from quiver.tools import ToolCompiler, ToolOutput, ToolRegistry, invoke_future, register_builtin_tools

# Initialize Typer app with metadata
app = typer.Typer(
    name="quiver",
    help="Declare, index and invoke agent tools.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to a Quiver configuration YAML file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
ManifestOption = Annotated[
    Optional[list[Path]],
    typer.Option(
        "--manifest",
        "-m",
        help="Tool manifest YAML file (repeatable).",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
NoBuiltinsOption = Annotated[
    bool,
    typer.Option("--no-builtins", help="Do not register the built-in tools."),
]
CategoryOption = Annotated[
    Optional[str],
    typer.Option("--category", help="Only tools in this category."),
]
TagOption = Annotated[
    Optional[str],
    typer.Option("--tag", help="Only tools carrying this tag."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]quiver[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)."),
    ] = "WARNING",
) -> None:
    """
    Quiver - declare tools once, expose them to any agent.
    """
    configure_logging(log_level)


def _fail(message: str, debug: bool = False) -> NoReturn:
    console.print(message, style="red", markup=False, highlight=False)
    if debug:
        console.print(f"[dim]{traceback.format_exc()}[/dim]")
    raise typer.Exit(code=1)


def _build_registry(
    config_path: Path | None,
    manifests: list[Path] | None,
    no_builtins: bool,
) -> ToolRegistry:
    """Load config, register built-ins and manifests into a fresh registry."""
    config = load_config(config_path) if config_path else QuiverConfig()
    registry = ToolRegistry()
    compiler = ToolCompiler(registry)

    if not no_builtins:
        register_builtin_tools(config, compiler)
    for manifest_path in manifests or []:
        result = load_manifest(manifest_path, compiler)
        for failure in result.failures:
            console.print(f"Skipped tool: {failure.message}", style="yellow", markup=False, highlight=False)
    return registry


def _select(registry: ToolRegistry, category: str | None, tag: str | None) -> list[ToolSpec]:
    specs = registry.by_category(category) if category else registry.all_tools()
    if tag:
        specs = [spec for spec in specs if tag in spec.tags]
    return specs


@app.command("tools")
def list_tools(
    config_path: ConfigOption = None,
    manifests: ManifestOption = None,
    no_builtins: NoBuiltinsOption = False,
    category: CategoryOption = None,
    tag: TagOption = None,
) -> None:
    """
    List declared tools.

    Example:
        $ quiver tools --category filesystem
    """
    try:
        registry = _build_registry(config_path, manifests, no_builtins)
    except QuiverError as e:
        _fail(f"Error loading tools: {e.message}")

    specs = _select(registry, category, tag)
    if not specs:
        console.print("[dim]No tools found.[/dim]")
        raise typer.Exit(code=0)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Category")
    table.add_column("Tags")
    table.add_column("Parameters")
    table.add_column("Flags", width=14)

    for spec in specs:
        params = ", ".join(f"{p.name}?" if p.optional else p.name for p in spec.parameters)
        flags = [
            flag
            for flag, enabled in (
                ("async", spec.is_async),
                ("confirm", spec.requires_confirmation),
                ("include", spec.include_result),
            )
            if enabled
        ]
        table.add_row(spec.name, spec.category, ", ".join(spec.tags), params, " ".join(flags))

    console.print(table)
    console.print(f"[dim]{len(specs)} tool(s)[/dim]")


@app.command()
def schema(
    config_path: ConfigOption = None,
    manifests: ManifestOption = None,
    no_builtins: NoBuiltinsOption = False,
    category: CategoryOption = None,
    tag: TagOption = None,
    export_format: Annotated[
        str,
        typer.Option("--format", "-f", help=f"Output format: {', '.join(EXPORT_FORMATS)}."),
    ] = "native",
    output: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Write the JSON to this file instead of stdout."),
    ] = None,
) -> None:
    """
    Print the capability schema of declared tools as JSON.

    Example:
        $ quiver schema --format openai --tag read
    """
    if export_format not in EXPORT_FORMATS:
        _fail(f"Unknown format '{export_format}'. Choose one of: {', '.join(EXPORT_FORMATS)}")

    try:
        registry = _build_registry(config_path, manifests, no_builtins)
    except QuiverError as e:
        _fail(f"Error loading tools: {e.message}")

    text = dump_capabilities(_select(registry, category, tag), export_format)  # type: ignore[arg-type]
    if output:
        output.write_text(text + "\n", encoding="utf-8")
        console.print(f"[green]✓[/green] Schema written to {output}", highlight=False)
    else:
        print(text)


def _render_result(result: Any) -> tuple[bool, Any]:
    """Return (success, JSON-friendly payload) for an invocation result."""
    if isinstance(result, ToolOutput):
        if result.success:
            return True, result.data
        return False, result.error
    return True, result


@app.command("invoke")
def invoke_tool(
    name: Annotated[str, typer.Argument(help="Name of the tool to invoke.")],
    args_json: Annotated[
        str,
        typer.Option("--args", "-a", help="Arguments as a JSON object."),
    ] = "{}",
    config_path: ConfigOption = None,
    manifests: ManifestOption = None,
    no_builtins: NoBuiltinsOption = False,
    timeout: Annotated[
        float,
        typer.Option("--timeout", help="Seconds to wait for an asynchronous tool."),
    ] = 120.0,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the result in JSON format."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full error tracebacks."),
    ] = False,
) -> None:
    """
    Invoke a tool with JSON arguments.

    Example:
        $ quiver invoke read_file --args '{"path": "README.md", "limit": 10}'
    """
    try:
        args = json.loads(args_json)
    except json.JSONDecodeError as e:
        _fail(f"--args is not valid JSON: {e}")
    if not isinstance(args, dict):
        _fail("--args must be a JSON object")

    try:
        registry = _build_registry(config_path, manifests, no_builtins)
        spec = registry.get(name)
        result = invoke_future(spec, args).result(timeout=timeout)
    except FutureTimeoutError:
        _fail(f"Timed out after {timeout} seconds waiting for {name}")
    except QuiverError as e:
        if json_output:
            print(json.dumps({"tool": name, "success": False, "error": e.to_dict()}, indent=2, default=str))
            raise typer.Exit(code=1)
        _fail(str(e), debug)

    success, payload = _render_result(result)
    if json_output:
        key = "result" if success else "error"
        print(json.dumps({"tool": name, "success": success, key: payload}, indent=2, default=str))
    elif isinstance(payload, str):
        console.print(payload, markup=False, highlight=False, style=None if success else "red")
    else:
        console.print_json(json.dumps(payload, default=str))

    raise typer.Exit(code=0 if success else 1)


if __name__ == "__main__":
    app()
