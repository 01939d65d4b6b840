from __future__ import annotations
from typing import Any, Callable, List, Optional, TypeVar

import anyio

from .cause import Cause, Exit
from .core import _group_failure, _release_all, _release_all_sync, _report_suppressed
from .types import Disposable, Finalizer

T = TypeVar("T", bound=Disposable)
F = TypeVar("F", bound=Callable[[], Any])


class Scope:
    """Resource group that is filled in incrementally and disposed as a whole.

    ``using_all()`` needs the whole group up front; a Scope lets resources be
    adopted one at a time, e.g. while they are being created, and releases
    them all when it closes, with the same failure policy as ``using_all()``.

    Example:
        ```python
        async with Scope() as scope:
            db = scope.adopt(await Database.connect("postgresql://..."))
            cache = scope.adopt(Cache("redis://..."))
            scope.defer(lambda: print("bye"))
            ...
        # db, cache and the deferred callable are all disposed here
        ```
    """
    def __init__(self):
        self._resources: List[Disposable] = []
        self._closed = False
        self._released: Optional[anyio.Event] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._resources)

    def adopt(self, resource: T) -> T:
        """Register a resource to be disposed when the scope closes.

        Returns the resource itself so it can be adopted inline.

        Raises:
            RuntimeError: If the scope has already been closed
        """
        if self._closed:
            raise RuntimeError("cannot adopt a resource into a closed scope")
        self._resources.append(resource)
        return resource

    def defer(self, fn: F) -> F:
        """Register a zero-argument callable (sync or async) to run on close."""
        self.adopt(Finalizer(fn))
        return fn

    def _take(self) -> List[Disposable]:
        self._closed = True
        taken, self._resources = self._resources, []
        return taken

    async def _release(self) -> List[BaseException]:
        # later closers wait for the release pass of the first one
        if self._closed:
            if self._released is not None: await self._released.wait()
            return []
        self._released = anyio.Event()
        try:
            return await _release_all(self._take(), "scope")
        finally:
            self._released.set()

    async def close_exit(self) -> Exit[None]:
        """Dispose every adopted resource concurrently and report the outcome
        as an ``Exit`` instead of raising.

        Closing an already closed scope succeeds once the first close has
        finished releasing; only the first close reports release failures.
        """
        errors = await self._release()
        if not errors: return Exit.succeed()
        return Exit.failed(Cause.combine(errors, concurrent=True).annotate("op=scope"))

    async def close(self) -> None:
        """Dispose every adopted resource concurrently.

        Raises:
            DisposeError: If at least one release failed; every resource has
                still been given its release attempt
            BaseException: A ``KeyboardInterrupt`` or other non-``Exception``
                raised by a release, as is
        """
        errors = await self._release()
        if errors:
            raise _group_failure("scope", errors, concurrent=True)

    def close_sync(self) -> None:
        """Dispose every adopted resource synchronously, most recently
        adopted first. All resources must be synchronous Disposables.
        """
        if self._closed: return
        errors = _release_all_sync(self._take()[::-1], "scope")
        if errors:
            raise _group_failure("scope", errors, concurrent=False)

    async def __aenter__(self) -> "Scope":
        return self

    async def __aexit__(self, et, e, tb) -> bool:
        if e is None:
            await self.close()
            return False
        _report_suppressed("scope", e, await self._release())
        return False

    def __enter__(self) -> "Scope":
        return self

    def __exit__(self, et, e, tb) -> bool:
        if e is None:
            self.close_sync()
            return False
        if not self._closed:
            _report_suppressed("scope", e, _release_all_sync(self._take()[::-1], "scope"))
        return False
