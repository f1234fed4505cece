"""
Unit tests for the dispatch invoker.

Tests cover:
- Argument validation against compiled parameters
- Positional ordering of required and optional arguments
- Synchronous and asynchronous invocation
- Error propagation from bindings
- Future adaptation
"""

import threading
from typing import Any, Callable

import pytest

from quiver.errors import EffectorFailureError, InvalidArgumentError, MatchNotFoundError
from quiver.schema import ToolSpec
from quiver.tools.compiler import OPTIONAL, ToolCompiler
from quiver.tools.dispatch import invoke, invoke_future, positional_arguments, validate_arguments


def _edit(path: str, old: str, new: str, count: int | None = None) -> str:
    return f"{path}:{old}->{new}:{count}"


@pytest.fixture
def edit_spec(compiler: ToolCompiler) -> ToolSpec:
    return compiler.compile(
        _edit,
        name="edit",
        category="filesystem",
        args=[
            {"name": "path", "type": "string"},
            {"name": "old", "type": "string"},
            {"name": "new", "type": "string"},
            OPTIONAL,
            {"name": "count", "type": "integer"},
        ],
    )


@pytest.fixture
def rich_spec(compiler: ToolCompiler) -> ToolSpec:
    """A tool with enum, array and object parameters."""

    def configure(mode: str, paths: list[str], opts: dict[str, Any] | None = None) -> dict[str, Any]:
        return {"mode": mode, "paths": paths, "opts": opts}

    return compiler.compile(
        configure,
        category="config",
        args=[
            {"name": "mode", "type": "string", "enum": ["fast", "safe"]},
            {"name": "paths", "type": "array", "items": {"type": "string"}},
            OPTIONAL,
            {
                "name": "opts",
                "type": "object",
                "properties": {"depth": {"type": "integer"}, "label": {"type": "string"}},
                "required": ["depth"],
            },
        ],
    )


# =============================================================================
# Validation Tests
# =============================================================================


class TestValidateArguments:
    """Tests for validate_arguments."""

    def test_valid(self, edit_spec: ToolSpec) -> None:
        """Complete, well-typed arguments pass."""
        assert validate_arguments(edit_spec, {"path": "a", "old": "b", "new": "c"}) == []

    def test_missing_required(self, edit_spec: ToolSpec) -> None:
        """Each missing required argument is reported."""
        errors = validate_arguments(edit_spec, {"path": "a"})
        assert "missing required argument 'old'" in errors
        assert "missing required argument 'new'" in errors

    def test_unknown_argument(self, edit_spec: ToolSpec) -> None:
        """Arguments not in the schema are rejected."""
        errors = validate_arguments(edit_spec, {"path": "a", "old": "b", "new": "c", "force": True})
        assert errors == ["unknown argument 'force'"]

    def test_wrong_type(self, edit_spec: ToolSpec) -> None:
        """Types are checked."""
        errors = validate_arguments(edit_spec, {"path": 1, "old": "b", "new": "c"})
        assert errors == ["'path' must be of type string, got int"]

    def test_bool_is_not_integer(self, edit_spec: ToolSpec) -> None:
        """Booleans do not pass as integers."""
        errors = validate_arguments(edit_spec, {"path": "a", "old": "b", "new": "c", "count": True})
        assert errors == ["'count' must be of type integer, got bool"]

    def test_optional_none_accepted(self, edit_spec: ToolSpec) -> None:
        """An explicit null for an optional parameter means omitted."""
        assert validate_arguments(edit_spec, {"path": "a", "old": "b", "new": "c", "count": None}) == []

    def test_required_none_rejected(self, edit_spec: ToolSpec) -> None:
        """A null for a required parameter is a type error."""
        errors = validate_arguments(edit_spec, {"path": None, "old": "b", "new": "c"})
        assert errors == ["'path' must be of type string, got NoneType"]

    def test_not_a_mapping(self, edit_spec: ToolSpec) -> None:
        """Arguments must be an object."""
        errors = validate_arguments(edit_spec, ["a", "b", "c"])  # type: ignore[arg-type]
        assert errors == ["arguments must be an object, got list"]

    def test_enum(self, rich_spec: ToolSpec) -> None:
        """Enum parameters only accept listed values."""
        errors = validate_arguments(rich_spec, {"mode": "reckless", "paths": []})
        assert len(errors) == 1
        assert "'mode' value 'reckless' is not one of: fast, safe" in errors[0]

    def test_array_items_checked(self, rich_spec: ToolSpec) -> None:
        """Array elements are validated with their index."""
        errors = validate_arguments(rich_spec, {"mode": "fast", "paths": ["a", 2]})
        assert errors == ["'paths[1]' must be of type string, got int"]

    def test_object_required_key(self, rich_spec: ToolSpec) -> None:
        """Required object members must be present."""
        errors = validate_arguments(rich_spec, {"mode": "fast", "paths": [], "opts": {"label": "x"}})
        assert errors == ["'opts' is missing required key 'depth'"]

    def test_object_unknown_key(self, rich_spec: ToolSpec) -> None:
        """Undeclared object members are rejected."""
        errors = validate_arguments(rich_spec, {"mode": "fast", "paths": [], "opts": {"depth": 1, "extra": 0}})
        assert errors == ["'opts' has unknown key 'extra'"]

    def test_object_member_type(self, rich_spec: ToolSpec) -> None:
        """Object members are type-checked with a dotted path."""
        errors = validate_arguments(rich_spec, {"mode": "fast", "paths": [], "opts": {"depth": "deep"}})
        assert errors == ["'opts.depth' must be of type integer, got str"]


class TestPositionalArguments:
    """Tests for positional_arguments."""

    def test_order_and_defaults(self, edit_spec: ToolSpec) -> None:
        """Arguments follow parameter order; omitted optionals are None."""
        args = {"new": "c", "path": "a", "old": "b"}
        assert positional_arguments(edit_spec, args) == ["a", "b", "c", None]


# =============================================================================
# Invocation Tests
# =============================================================================


class TestInvokeSync:
    """Tests for synchronous invocation."""

    def test_returns_binding_result(self, edit_spec: ToolSpec) -> None:
        """The binding's return value comes back unchanged."""
        result = invoke(edit_spec, {"path": "f", "old": "x", "new": "y", "count": 2})
        assert result == "f:x->y:2"

    def test_omitted_optional_is_none(self, edit_spec: ToolSpec) -> None:
        """Omitted optionals reach the binding as None."""
        assert invoke(edit_spec, {"path": "f", "old": "x", "new": "y"}) == "f:x->y:None"

    def test_invalid_arguments_do_not_run_binding(self, compiler: ToolCompiler) -> None:
        """Validation failures raise before the binding is called."""
        calls: list[str] = []

        def record(text: str) -> None:
            calls.append(text)

        spec = compiler.compile(record, category="c", args=[{"name": "text", "type": "string"}])
        with pytest.raises(InvalidArgumentError) as exc_info:
            invoke(spec, {"text": 3})
        assert calls == []
        assert exc_info.value.tool == "record"
        assert exc_info.value.tool_args == {"text": 3}

    def test_no_args_for_parameterless_tool(self, compiler: ToolCompiler) -> None:
        """args may be omitted entirely."""
        spec = compiler.compile(lambda: "pong", name="ping", category="net")
        assert invoke(spec) == "pong"

    def test_callback_rejected_for_sync_tool(self, edit_spec: ToolSpec) -> None:
        """Synchronous tools do not take a callback."""
        with pytest.raises(ValueError, match="synchronous"):
            invoke(edit_spec, {"path": "f", "old": "x", "new": "y"}, callback=print)

    def test_quiver_error_passes_through(self, compiler: ToolCompiler) -> None:
        """Domain errors raised by a binding propagate unchanged."""

        def find(text: str) -> None:
            raise MatchNotFoundError(pattern=text)

        spec = compiler.compile(find, category="text", args=[{"name": "text", "type": "string"}])
        with pytest.raises(MatchNotFoundError):
            invoke(spec, {"text": "x"})

    def test_unexpected_error_wrapped(self, compiler: ToolCompiler) -> None:
        """Other exceptions become EffectorFailureError, chained."""

        def explode() -> None:
            raise RuntimeError("kaboom")

        spec = compiler.compile(explode, category="c")
        with pytest.raises(EffectorFailureError) as exc_info:
            invoke(spec, {})
        assert "RuntimeError: kaboom" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestInvokeAsync:
    """Tests for asynchronous invocation."""

    @pytest.fixture
    def echo_spec(self, compiler: ToolCompiler) -> ToolSpec:
        def echo(message: str, callback: Callable[[Any], None]) -> None:
            threading.Thread(target=callback, args=(message.upper(),)).start()

        return compiler.compile(echo, category="text", is_async=True, args=[{"name": "message", "type": "string"}])

    def test_result_via_callback(self, echo_spec: ToolSpec) -> None:
        """The result arrives through the callback, invoke returns None."""
        done = threading.Event()
        received: list[Any] = []

        def on_done(result: Any) -> None:
            received.append(result)
            done.set()

        assert invoke(echo_spec, {"message": "hi"}, on_done) is None
        assert done.wait(5)
        assert received == ["HI"]

    def test_callback_required(self, echo_spec: ToolSpec) -> None:
        """Async tools need a callback."""
        with pytest.raises(ValueError, match="callback"):
            invoke(echo_spec, {"message": "hi"})

    def test_callback_delivered_once(self, compiler: ToolCompiler, caplog: pytest.LogCaptureFixture) -> None:
        """A binding calling back twice delivers only the first result."""

        def chatty(callback: Callable[[Any], None]) -> None:
            callback("first")
            callback("second")

        spec = compiler.compile(chatty, category="c", is_async=True)
        received: list[Any] = []
        invoke(spec, {}, received.append)

        assert received == ["first"]
        assert "more than once" in caplog.text

    def test_validation_before_callback(self, echo_spec: ToolSpec) -> None:
        """Invalid arguments raise synchronously; the callback never fires."""
        received: list[Any] = []
        with pytest.raises(InvalidArgumentError):
            invoke(echo_spec, {"message": 1}, received.append)
        assert received == []


class TestInvokeFuture:
    """Tests for invoke_future."""

    def test_sync_resolved_immediately(self, edit_spec: ToolSpec) -> None:
        """Synchronous results resolve before the future is returned."""
        future = invoke_future(edit_spec, {"path": "f", "old": "x", "new": "y"})
        assert future.done()
        assert future.result() == "f:x->y:None"

    def test_async_resolves_later(self, compiler: ToolCompiler) -> None:
        """Asynchronous results resolve the future when the callback fires."""
        release = threading.Event()

        def slow(callback: Callable[[Any], None]) -> None:
            def work() -> None:
                release.wait(5)
                callback(42)

            threading.Thread(target=work).start()

        spec = compiler.compile(slow, category="c", is_async=True)
        future = invoke_future(spec, {})
        assert not future.done()
        release.set()
        assert future.result(timeout=5) == 42

    def test_errors_set_on_future(self, edit_spec: ToolSpec) -> None:
        """Invocation errors are set as the future's exception."""
        future = invoke_future(edit_spec, {"path": "f"})
        with pytest.raises(InvalidArgumentError):
            future.result(timeout=1)

    def test_late_callback_after_error_ignored(self, compiler: ToolCompiler) -> None:
        """A callback fired after the binding raised leaves the error in place."""
        handed_out: list[Callable[[Any], None]] = []

        def failing(callback: Callable[[Any], None]) -> None:
            handed_out.append(callback)
            raise MatchNotFoundError(pattern="needle")

        spec = compiler.compile(failing, category="c", is_async=True)
        future = invoke_future(spec, {})
        assert isinstance(future.exception(timeout=1), MatchNotFoundError)

        handed_out[0]("late")
        assert isinstance(future.exception(timeout=1), MatchNotFoundError)
