from __future__ import annotations
from typing import Any, Awaitable, Callable, Generic, Optional, Protocol, TypeVar, Union, runtime_checkable

C = TypeVar("C")


@runtime_checkable
class Disposable(Protocol):
    """Anything with a ``dispose()`` method.

    ``dispose()`` either completes immediately (returns ``None``) or returns
    an awaitable that completes the release. No base class is required:

    ```python
    class Connection:
        async def dispose(self) -> None:
            await self._transport.aclose()
    ```
    """
    def dispose(self) -> Union[None, Awaitable[None]]: ...


@runtime_checkable
class SyncDisposable(Protocol):
    """A Disposable whose ``dispose()`` never needs to be awaited.

    ``runtime_checkable`` only checks for the method; handing an object whose
    ``dispose()`` returns an awaitable to a synchronous variant is detected
    when it is released and reported as ``DisposableTypeError``.
    """
    def dispose(self) -> None: ...


class Finalizer:
    """Disposable wrapping a zero-argument callable, sync or async."""
    def __init__(self, fn: Callable[[], Any]):
        self._fn = fn

    def dispose(self) -> Optional[Awaitable[None]]:
        return self._fn()

    def __repr__(self) -> str:
        return f"Finalizer({self._fn!r})"


class Closing(Generic[C]):
    """Disposable view of an object exposing ``aclose()`` or ``close()``.

    ``aclose()`` wins when both exist, so async generators and async clients
    are closed the asynchronous way.
    """
    def __init__(self, obj: C):
        self.obj = obj

    def dispose(self) -> Optional[Awaitable[None]]:
        aclose = getattr(self.obj, "aclose", None)
        if aclose is not None:
            return aclose()
        return self.obj.close()  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"Closing({self.obj!r})"


def disposable(fn: Callable[[], Any]) -> Finalizer:
    return Finalizer(fn)


def closing(obj: C) -> Closing[C]:
    return Closing(obj)
