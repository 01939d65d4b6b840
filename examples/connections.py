"""
using / using_all: run work against connections and always close them.

Run: python examples/connections.py
"""
import asyncio

from usingpy import using, using_all, DisposeError


class Connection:
    def __init__(self, name: str, broken: bool = False):
        self.name = name
        self.broken = broken
        print(f"[conn] open {name}")

    async def query(self, x: int) -> int:
        await asyncio.sleep(0.01)
        return x * 3

    async def dispose(self) -> None:
        await asyncio.sleep(0.05)
        print(f"[conn] close {self.name}")
        if self.broken:
            raise ConnectionError(f"{self.name} did not close cleanly")


async def main():
    val = await using(Connection("primary"), lambda conn: conn.query(7))
    print("query =>", val)  # 21

    async def both(primary: Connection, replica: Connection) -> int:
        return await primary.query(1) + await replica.query(2)

    # the two connections are closed concurrently
    print("sum =>", await using_all([Connection("primary"), Connection("replica")], both))  # 9

    try:
        await using_all([Connection("a"), Connection("b", broken=True)], both)
    except DisposeError as err:
        print("dispose failed =>", err.errors)


if __name__ == "__main__":
    asyncio.run(main())
