from __future__ import annotations
from dataclasses import dataclass
import traceback
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

A = TypeVar("A")


@dataclass(frozen=True)
class Cause:
    """Structured description of why a release phase (or a whole execution)
    did not succeed.

    Leaves are ``fail`` (an ``Exception``) or ``interrupt`` (any other
    ``BaseException``, e.g. a cancellation). Composite causes record how
    the leaves happened: ``both`` for failures raised by releases running
    concurrently, ``then`` for failures raised one after another.

    Example:
        ```python
        cause = Cause.both(Cause.fail(OSError("a")), Cause.fail(OSError("b")))
        print(cause.render(include_traces=False))
        # Both:
        #   Fail(OSError('a'))
        #   Fail(OSError('b'))
        ```
    """
    kind: str
    left: Optional["Cause"] = None
    right: Optional["Cause"] = None
    error: Optional[BaseException] = None
    annotations: Tuple[str, ...] = ()

    def render(self, indent: str = "", include_traces: bool = True) -> str:
        def line(s: str) -> str: return indent + s + "\n"
        notes = "".join(line("@ " + n) for n in self.annotations)
        if self.kind in ("fail", "interrupt"):
            label = "Fail" if self.kind == "fail" else "Interrupt"
            s = notes + line(f"{label}({self.error!r})")
            if include_traces and self.error is not None and self.error.__traceback__:
                tb = "".join(traceback.format_exception(type(self.error), self.error, self.error.__traceback__))
                s += "".join(indent + "  " + l for l in tb.splitlines(True))
            return s
        if self.kind in ("both", "then"):
            op = "Both" if self.kind == "both" else "Then"
            l = self.left.render(indent + "  ", include_traces) if self.left else indent + "  (empty)\n"
            r = self.right.render(indent + "  ", include_traces) if self.right else indent + "  (empty)\n"
            return notes + line(op + ":") + l + r
        return notes + line(f"Unknown({self.kind})")

    def failures(self) -> List[BaseException]:
        """Leaf errors of this cause, left to right."""
        if self.kind in ("both", "then"):
            out: List[BaseException] = []
            if self.left: out.extend(self.left.failures())
            if self.right: out.extend(self.right.failures())
            return out
        return [self.error] if self.error is not None else []

    def annotate(self, note: str) -> "Cause":
        return Cause(kind=self.kind, left=self.left, right=self.right, error=self.error, annotations=self.annotations + (note,))

    @staticmethod
    def fail(ex: BaseException) -> "Cause": return Cause(kind="fail", error=ex)
    @staticmethod
    def interrupt(ex: BaseException) -> "Cause": return Cause(kind="interrupt", error=ex)
    @staticmethod
    def both(l: "Cause", r: "Cause") -> "Cause": return Cause(kind="both", left=l, right=r)
    @staticmethod
    def then(l: "Cause", r: "Cause") -> "Cause": return Cause(kind="then", left=l, right=r)

    @staticmethod
    def from_exception(ex: BaseException) -> "Cause":
        return Cause.fail(ex) if isinstance(ex, Exception) else Cause.interrupt(ex)

    @staticmethod
    def combine(errors: Sequence[BaseException], concurrent: bool) -> "Cause":
        """Fold release failures into one cause, ``both`` when the releases
        ran concurrently and ``then`` when they ran in sequence.
        """
        if not errors: raise ValueError("cannot build a cause from no errors")
        join = Cause.both if concurrent else Cause.then
        cause = Cause.from_exception(errors[0])
        for ex in errors[1:]:
            cause = join(cause, Cause.from_exception(ex))
        return cause


@dataclass
class Exit(Generic[A]):
    success: bool
    value: Optional[A] = None
    cause: Optional[Cause] = None

    @staticmethod
    def succeed(value: A = None) -> "Exit[A]": return Exit(success=True, value=value)
    @staticmethod
    def failed(cause: Cause) -> "Exit[A]": return Exit(success=False, cause=cause)
