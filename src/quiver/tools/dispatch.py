"""
Dispatch invoker for Quiver.

Calls a ToolSpec's binding with agent-supplied arguments.

Invocation Flow:
    1. Validate the arguments against the compiled parameters
    2. Order them positionally: required first, then optional (None if omitted)
    3. Synchronous tools: call the binding and return its result
    4. Asynchronous tools: call the binding with a trailing single-shot
       callback and return immediately; the result arrives via the callback

There is no timeout and no cancellation here. A hung asynchronous binding
never calls back; hosts that need a deadline wait on invoke_future() with
their own timeout and clean up the underlying operation themselves.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Mapping

from quiver.errors import EffectorFailureError, InvalidArgumentError, QuiverError
from quiver.schema import ParameterSpec, ParamType, ToolSpec

logger = logging.getLogger(__name__)

Callback = Callable[[Any], None]

_TYPE_CHECKS: dict[ParamType, Callable[[Any], bool]] = {
    ParamType.STRING: lambda v: isinstance(v, str),
    ParamType.INTEGER: lambda v: isinstance(v, int) and not isinstance(v, bool),
    ParamType.NUMBER: lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    ParamType.BOOLEAN: lambda v: isinstance(v, bool),
    ParamType.ARRAY: lambda v: isinstance(v, (list, tuple)),
    ParamType.OBJECT: lambda v: isinstance(v, Mapping),
    ParamType.NULL: lambda v: v is None,
}


# =============================================================================
# Validation
# =============================================================================


def validate_arguments(spec: ToolSpec, args: Mapping[str, Any]) -> list[str]:
    """
    Validate invocation arguments against a tool's parameters.

    Args:
        spec: The tool being invoked
        args: Argument name -> value, as supplied by the agent

    Returns:
        List of validation error messages (empty if valid)
    """
    if not isinstance(args, Mapping):
        return [f"arguments must be an object, got {type(args).__name__}"]

    errors: list[str] = []
    known = {param.name for param in spec.parameters}
    for name in args:
        if name not in known:
            errors.append(f"unknown argument '{name}'")

    for param in spec.parameters:
        if param.name not in args:
            if not param.optional:
                errors.append(f"missing required argument '{param.name}'")
            continue
        value = args[param.name]
        if value is None and param.optional:
            continue
        errors.extend(_check_value(param, value, param.name))

    return errors


def _check_value(param: ParameterSpec, value: Any, path: str) -> list[str]:
    """Check one value against its spec, recursing into arrays and objects."""
    if not _TYPE_CHECKS[param.type](value):
        return [f"'{path}' must be of type {param.type.value}, got {type(value).__name__}"]

    # Enum validation (for strings)
    if param.enum is not None and param.type == ParamType.STRING and value not in param.enum:
        return [f"'{path}' value {value!r} is not one of: {', '.join(param.enum)}"]

    errors: list[str] = []
    if param.type == ParamType.ARRAY and param.items is not None:
        for index, item in enumerate(value):
            errors.extend(_check_value(param.items, item, f"{path}[{index}]"))

    if param.type == ParamType.OBJECT and param.properties is not None:
        for key in param.required or ():
            if key not in value:
                errors.append(f"'{path}' is missing required key '{key}'")
        for key, member in value.items():
            member_spec = param.properties.get(key)
            if member_spec is None:
                errors.append(f"'{path}' has unknown key '{key}'")
                continue
            if member is None and key not in (param.required or ()):
                continue
            errors.extend(_check_value(member_spec, member, f"{path}.{key}"))

    return errors


def positional_arguments(spec: ToolSpec, args: Mapping[str, Any]) -> list[Any]:
    """Arrange arguments in compiled parameter order, None for omitted ones."""
    return [args.get(param.name) for param in spec.parameters]


# =============================================================================
# Invocation
# =============================================================================


class _SingleShot:
    """Wraps a completion callback so only the first call is delivered."""

    def __init__(self, callback: Callback, tool: str) -> None:
        self._callback = callback
        self._tool = tool
        self._lock = threading.Lock()
        self._called = False

    def __call__(self, result: Any) -> None:
        with self._lock:
            if self._called:
                logger.warning("Tool %s called back more than once; extra result dropped", self._tool)
                return
            self._called = True
        self._callback(result)


def invoke(
    spec: ToolSpec,
    args: Mapping[str, Any] | None = None,
    callback: Callback | None = None,
) -> Any:
    """
    Invoke a tool.

    Args:
        spec: The tool to invoke
        args: Argument name -> value
        callback: Completion callback, required for asynchronous tools

    Returns:
        The binding's result for synchronous tools, None for asynchronous ones

    Raises:
        InvalidArgumentError: If the arguments fail validation (binding not run)
        ValueError: If an asynchronous tool is invoked without a callback
        QuiverError: Raised by the binding, passed through unchanged
        EffectorFailureError: If the binding raises anything else
    """
    args = {} if args is None else args
    errors = validate_arguments(spec, args)
    if errors:
        raise InvalidArgumentError(
            tool=spec.name,
            tool_args=dict(args) if isinstance(args, Mapping) else {},
            validation_error="; ".join(errors),
        )

    positional = positional_arguments(spec, args)
    if spec.is_async:
        if callback is None:
            msg = f"Tool {spec.name} is asynchronous and needs a completion callback"
            raise ValueError(msg)
        positional.append(_SingleShot(callback, spec.name))
    elif callback is not None:
        msg = f"Tool {spec.name} is synchronous; it does not take a callback"
        raise ValueError(msg)

    logger.debug("Invoking tool %s", spec.name)
    try:
        return spec.binding(*positional)
    except QuiverError:
        raise
    except Exception as e:
        raise EffectorFailureError(
            tool=spec.name,
            tool_args=dict(args),
            underlying_error=f"{type(e).__name__}: {e}",
        ) from e


def invoke_future(spec: ToolSpec, args: Mapping[str, Any] | None = None) -> "Future[Any]":
    """
    Invoke a tool and expose its completion as a Future.

    Synchronous results resolve the future before it is returned. Failures
    raised at invocation time are set as the future's exception rather than
    raised.
    """
    future: Future[Any] = Future()
    future.set_running_or_notify_cancel()

    def complete(result: Any) -> None:
        # the binding may have raised after handing out the callback
        if not future.done():
            future.set_result(result)

    try:
        if spec.is_async:
            invoke(spec, args, complete)
        else:
            future.set_result(invoke(spec, args))
    except (QuiverError, ValueError) as e:
        if not future.done():
            future.set_exception(e)
    return future
