"""
Option resolution.

Every configurable upload parameter may be given as:

- a static value (or a future resolving to it),
- an awaitable producer ``(context, file) -> value | Awaitable[value]``,
- a callback producer ``(context, file, callback) -> None`` that eventually
  calls ``callback(error, value)``.

``resolve_option`` turns any of these into a uniform async producer
``(context, file) -> Awaitable[value]``. Explicit ``StaticOption``,
``AwaitableOption`` and ``CallbackOption`` wrappers select the shape
directly; bare callables are classified once by positional arity
(three or more required positional parameters means callback style).
"""

import asyncio
import inspect
import threading
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from s3_storage.core.exceptions import OptionResolutionError

T = TypeVar("T")

OptionProducer = Callable[[Any, Any], Awaitable[Any]]
OptionCallback = Callable[..., None]

CALLBACK_ARITY = 3


@dataclass(frozen=True)
class StaticOption(Generic[T]):
    """A literal value, or a future of one."""

    value: Any
    _shared: dict = field(default_factory=dict, compare=False, repr=False)

    async def __call__(self, context: Any, file: Any) -> T:
        value = self.value
        if inspect.iscoroutine(value):
            # a coroutine can only be awaited once; every upload shares one task
            task = self._shared.get("task")
            if task is None:
                task = self._shared["task"] = asyncio.ensure_future(value)
            return await task
        if inspect.isawaitable(value):
            return await value
        return value


@dataclass(frozen=True)
class AwaitableOption(Generic[T]):
    """A producer called as ``func(context, file)``; its result may be awaitable."""

    func: Callable[[Any, Any], Union[T, Awaitable[T]]]

    async def __call__(self, context: Any, file: Any) -> T:
        result = self.func(context, file)
        if inspect.isawaitable(result):
            result = await result
        return result


@dataclass(frozen=True)
class CallbackOption(Generic[T]):
    """
    A producer called as ``func(context, file, callback)``.

    ``callback(error, value=None, replacement_stream=None)`` settles the
    produced future; only the first call counts and it may come from any
    thread. A ``replacement_stream`` becomes ``file.stream`` before the
    value is delivered.
    """

    func: Callable[[Any, Any, OptionCallback], None]

    async def __call__(self, context: Any, file: Any) -> T:
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        loop_thread = threading.get_ident()

        def settle(error: Any, value: Any, replacement_stream: Any) -> None:
            if future.done():
                return
            if error is not None:
                if not isinstance(error, BaseException):
                    error = OptionResolutionError(str(error))
                future.set_exception(error)
                return
            if replacement_stream is not None:
                file.stream = replacement_stream
            future.set_result(value)

        def callback(error: Any = None, value: Any = None, replacement_stream: Any = None) -> None:
            if threading.get_ident() == loop_thread:
                settle(error, value, replacement_stream)
            else:
                loop.call_soon_threadsafe(settle, error, value, replacement_stream)

        self.func(context, file, callback)
        return await future


Option = Union[StaticOption, AwaitableOption, CallbackOption, Callable[..., Any], Any]


def positional_arity(func: Callable[..., Any]) -> int:
    """
    Count the positional parameters a callable declares.

    ``*args``, ``**kwargs``, keyword-only parameters and parameters with a
    default value are not counted.
    Callables whose signature cannot be read count as zero.
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return 0
    return sum(
        1
        for parameter in signature.parameters.values()
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and parameter.default is inspect.Parameter.empty
    )


def classify_option(option: Any) -> Union[StaticOption, AwaitableOption, CallbackOption]:
    """Wrap a configured option in its explicit shape."""
    if isinstance(option, (StaticOption, AwaitableOption, CallbackOption)):
        return option
    if not callable(option):
        return StaticOption(option)
    if positional_arity(option) >= CALLBACK_ARITY:
        return CallbackOption(option)
    return AwaitableOption(option)


def resolve_option(option: Any) -> OptionProducer:
    """
    Normalize one configured option into an async producer.

    Args:
        option: Static value, awaitable producer, callback producer or an
            explicit option wrapper

    Returns:
        Coroutine function ``(context, file) -> value`` invoking the
        configured option exactly once per call
    """
    return classify_option(option)


def with_default(option: Optional[Any], default: Any) -> Any:
    """Return ``option`` unless it is unset (None)."""
    return default if option is None else option
