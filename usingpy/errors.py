from __future__ import annotations
from typing import Iterable, Optional, Tuple

from .cause import Cause

__all__ = ("DisposeError", "DisposableTypeError", "attach_suppressed", "suppressed")

_SUPPRESSED_ATTR = "__usingpy_suppressed__"


class DisposeError(Exception):
    """One or more resources of a group failed to dispose after the work
    succeeded.

    Attributes:
        errors: every release failure, in resource-group order
        cause: the failures folded into a ``Cause`` tree (``both`` for
            concurrent release, ``then`` for sequential release)
    """

    def __init__(self, errors: Iterable[BaseException], cause: Optional[Cause] = None, concurrent: bool = True):
        self.errors: Tuple[BaseException, ...] = tuple(errors)
        if not self.errors:
            raise ValueError("DisposeError needs at least one error")
        self.cause = cause or Cause.combine(self.errors, concurrent)
        summary = "; ".join(repr(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} resource(s) failed to dispose: {summary}")

    def __reduce__(self):
        return (type(self), (self.errors, self.cause), self.__dict__)


class DisposableTypeError(TypeError):
    """A synchronous variant was handed something that needs to be awaited."""

    pass


def attach_suppressed(error: BaseException, errors: Iterable[BaseException]) -> BaseException:
    """Records release failures on the work failure that stays primary.

    The failures are kept on the exception object (see ``suppressed()``) and
    added as exception notes so that they show up in printed tracebacks.
    """
    errors = tuple(errors)
    if errors:
        setattr(error, _SUPPRESSED_ATTR, suppressed(error) + errors)
        for ex in errors:
            error.add_note(f"while disposing, also raised: {ex!r}")
    return error


def suppressed(error: BaseException) -> Tuple[BaseException, ...]:
    """Returns the release failures attached to a work failure, if any."""
    return tuple(getattr(error, _SUPPRESSED_ATTR, ()))
