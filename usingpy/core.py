from __future__ import annotations
import inspect
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, TypeVar, Union

import anyio

from .cause import Cause
from .errors import DisposeError, DisposableTypeError, attach_suppressed
from .logger import get_logger
from .types import Disposable, SyncDisposable

T = TypeVar("T", bound=Disposable); S = TypeVar("S", bound=SyncDisposable); A = TypeVar("A")


def _discard(aw: Any) -> None:
    # close rejected coroutines so they are not reported as never awaited
    if inspect.iscoroutine(aw): aw.close()


def _ensure_sync_result(result: A, fn: Callable[..., Any]) -> A:
    if inspect.isawaitable(result):
        _discard(result)
        raise DisposableTypeError(f"{fn!r} returned an awaitable; use using() or using_all() for async work")
    return result


def _dispose_sync(resource: SyncDisposable) -> None:
    res = resource.dispose()
    if inspect.isawaitable(res):
        _discard(res)
        raise DisposableTypeError(f"{type(resource).__name__}.dispose() returned an awaitable; use using() or using_all() to release it")


async def _dispose(resource: Disposable) -> None:
    res = resource.dispose()
    if inspect.isawaitable(res): await res


def _release_all_sync(resources: Sequence[SyncDisposable], op: str) -> List[BaseException]:
    """Disposes resources one after another in the given order. A failing
    release does not stop the pass; failures come back in release order.
    """
    get_logger().debug("disposing", op=op, resources=len(resources), mode="sequential")
    errors: List[BaseException] = []
    for r in resources:
        try: _dispose_sync(r)
        except BaseException as ex: errors.append(ex)
    return errors


async def _release_all(resources: Sequence[Disposable], op: str) -> List[BaseException]:
    """Starts every release at once and waits for all of them.

    The pass is shielded from cancellation of the calling task, and every
    release captures its own failure so that one failing release never
    cancels its siblings. Failures come back in resource-group order.
    """
    get_logger().debug("disposing", op=op, resources=len(resources), mode="concurrent")
    errors: List[Optional[BaseException]] = [None] * len(resources)

    async def release(i: int, r: Disposable) -> None:
        try: await _dispose(r)
        except BaseException as ex: errors[i] = ex

    with anyio.CancelScope(shield=True):
        if len(resources) == 1:
            await release(0, resources[0])
        elif resources:
            async with anyio.create_task_group() as tg:
                for i, r in enumerate(resources): tg.start_soon(release, i, r)
    return [e for e in errors if e is not None]


def _report_suppressed(op: str, error: BaseException, errors: List[BaseException]) -> None:
    # the work failure stays primary; release failures ride along on it
    if not errors: return
    attach_suppressed(error, errors)
    log = get_logger()
    for ex in errors:
        log.error("dispose failed while work was failing", op=op, error=repr(ex), primary=repr(error))


def _group_failure(op: str, errors: List[BaseException], concurrent: bool) -> BaseException:
    """Builds the exception to raise for a group whose work succeeded but whose
    release pass did not.

    Release failures are wrapped in a ``DisposeError``. An interrupt
    (``KeyboardInterrupt``, ``SystemExit``, a cancellation) cannot hide inside
    an ``Exception``, so the first one is raised as is, carrying the other
    failures as suppressed errors.
    """
    interrupts = [ex for ex in errors if not isinstance(ex, Exception)]
    if interrupts:
        primary = interrupts[0]
        _report_suppressed(op, primary, [ex for ex in errors if ex is not primary])
        return primary
    return DisposeError(errors, cause=Cause.combine(errors, concurrent).annotate(f"op={op}"))


async def using(resource: T, fn: Callable[[T], Union[A, Awaitable[A]]]) -> A:
    """Run ``fn(resource)`` and dispose the resource afterwards, whatever happens.

    ``fn`` may return a value or an awaitable; ``resource.dispose()`` may be
    synchronous or asynchronous. The resource is disposed exactly once, after
    ``fn`` has settled and before the caller sees the outcome, also when the
    calling task is cancelled while ``fn`` runs.

    Args:
        resource: The Disposable handed to ``fn``
        fn: The work to run against the resource

    Returns:
        The value produced by ``fn``

    Raises:
        Whatever ``fn`` raised (the same exception object). Failures of
        ``dispose()`` in that case are attached to it, see ``suppressed()``.
        If ``fn`` succeeded but ``dispose()`` failed, the dispose failure.

    Example:
        ```python
        body = await using(HttpClient(), lambda c: c.get("/status"))
        ```
    """
    try:
        result = fn(resource)
        if inspect.isawaitable(result):
            result = await result
    except BaseException as ex:
        _report_suppressed("using", ex, await _release_all([resource], "using"))
        raise
    errors = await _release_all([resource], "using")
    if errors:
        raise errors[0]
    return result


def using_sync(resource: S, fn: Callable[[S], A]) -> A:
    """Synchronous ``using()``: ``fn`` and ``dispose()`` must not return awaitables.

    Returning one is reported as ``DisposableTypeError`` once the resource has
    been through its release attempt.
    """
    try:
        result = _ensure_sync_result(fn(resource), fn)
    except BaseException as ex:
        _report_suppressed("using_sync", ex, _release_all_sync([resource], "using_sync"))
        raise
    errors = _release_all_sync([resource], "using_sync")
    if errors:
        raise errors[0]
    return result


async def using_all(resources: Iterable[T], fn: Callable[..., Union[A, Awaitable[A]]]) -> A:
    """Run ``fn(*resources)`` and dispose every resource afterwards.

    Resources are passed positionally in the order given. After ``fn`` has
    settled, all of them are disposed concurrently and the call waits for the
    slowest one; no order between the releases is promised.

    Raises:
        Whatever ``fn`` raised, with any release failures attached to it.
        ``DisposeError`` if ``fn`` succeeded but at least one release failed;
        ``DisposeError.errors`` lists every failure in group order. A
        ``KeyboardInterrupt`` or other non-``Exception`` raised by a release
        is re-raised itself instead.

    Example:
        ```python
        rows = await using_all(
            [open_db("primary"), open_db("replica")],
            lambda primary, replica: sync_tables(primary, replica),
        )
        ```
    """
    group = list(resources)
    try:
        result = fn(*group)
        if inspect.isawaitable(result):
            result = await result
    except BaseException as ex:
        _report_suppressed("using_all", ex, await _release_all(group, "using_all"))
        raise
    errors = await _release_all(group, "using_all")
    if errors:
        raise _group_failure("using_all", errors, concurrent=True)
    return result


def using_all_sync(resources: Iterable[S], fn: Callable[..., A]) -> A:
    """Synchronous ``using_all()``.

    Releases run one by one in the order given; a failing release does not
    keep the following resources from being disposed.
    """
    group = list(resources)
    try:
        result = _ensure_sync_result(fn(*group), fn)
    except BaseException as ex:
        _report_suppressed("using_all_sync", ex, _release_all_sync(group, "using_all_sync"))
        raise
    errors = _release_all_sync(group, "using_all_sync")
    if errors:
        raise _group_failure("using_all_sync", errors, concurrent=False)
    return result
