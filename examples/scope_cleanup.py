"""
Scope: adopt resources as they are created, release them all at the end.

Run: USINGPY_LOG_LEVEL=debug python examples/scope_cleanup.py
"""
import asyncio
import tempfile

from usingpy import Scope, closing, suppressed, using_all_sync


class Lock:
    def __init__(self, name: str):
        self.name = name

    def dispose(self) -> None:
        print(f"[lock] release {self.name}")


async def main():
    async with Scope() as scope:
        fh = scope.adopt(closing(tempfile.TemporaryFile())).obj
        scope.defer(lambda: print("[scope] deferred callback"))
        fh.write(b"hello")

    # synchronous group: released in order a, b
    using_all_sync([Lock("a"), Lock("b")], lambda a, b: print("holding", a.name, b.name))

    try:
        async with Scope() as scope:
            scope.adopt(Lock("c"))
            raise RuntimeError("work failed")
    except RuntimeError as err:
        print("work failure kept =>", err, "suppressed:", suppressed(err))


if __name__ == "__main__":
    asyncio.run(main())
