"""Run memory-mapped code against a tracing memory and log every access."""

from __future__ import annotations

import argparse
import functools
import random
import sys
from typing import Callable, Iterable, Iterator, Optional, TextIO

_MASK32 = 0xFFFFFFFF
_PIN_LIMIT = 64
_PIN_COUNT = 71
_BROKEN_BASE = 0x80000000


def _random31(rng: random.Random) -> int:
    return rng.getrandbits(31)


def _addr_str(addr: int) -> str:
    return f"{addr:#x}" if addr else "(nil)"


def _signed32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


class TracingMemory:
    """A 32-bit memory that logs every load and store.

    A read returns the last value written to the address, or a random value
    (remembered from then on) if there was none.
    """

    def __init__(self, rng: Optional[random.Random] = None, out: Optional[TextIO] = None):
        self._rng = rng if rng is not None else random.Random(1)
        self._out = out
        self._values: dict = {}

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    def get32(self, addr: int) -> int:
        if addr not in self._values:
            self._values[addr] = _random31(self._rng)
        value = self._values[addr]
        self.out.write(f"\tREAD:addr={_addr_str(addr)}, val={value}\n")
        return value

    def put32(self, addr: int, value: int) -> None:
        value &= _MASK32
        self._values[addr] = value
        self.out.write(f"\tWRITE:addr={_addr_str(addr)}, val={value}\n")


def pin_values(rng: Optional[random.Random] = None) -> Iterator[int]:
    """Pin numbers to try: every pin below 64, then a few random values."""
    rng = rng if rng is not None else random.Random(1)
    for u in range(_PIN_COUNT):
        yield u if u < _PIN_LIMIT else _random31(rng)


def run_fn_iu(
    name: str,
    fn: Callable[[int], int],
    values: Iterable[int],
    out: Optional[TextIO] = None,
) -> list:
    """Call ``fn`` on each value, logging each call; return (value, result) pairs."""
    out = out if out is not None else sys.stdout
    results = []
    for value in values:
        out.write("-----------------------------------------\n")
        out.write(f"going to check <{name}({_signed32(value)})>\n")
        result = fn(value)
        out.write(f"returned={result}\n")
        results.append((value, result))
    return results


def run_fn_vv_once(name: str, fn: Callable[[], object], out: Optional[TextIO] = None) -> None:
    """Call a no-argument function once, logging the call."""
    out = out if out is not None else sys.stdout
    out.write("--------------------------------------------\n")
    out.write(f"going to check <{name}>\n")
    fn()
    out.write("returned\n")


def broken_example(memory: TracingMemory, pin: int) -> int:
    """Increment the word for ``pin`` at a bogus address; -1 for pins >= 32."""
    if pin >= 32:
        return -1
    addr = _BROKEN_BASE + pin * 4
    memory.put32(addr, memory.get32(addr) + 1)
    return 0


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Trace memory accesses of example code.")
    parser.add_argument("--seed", type=int, default=1, help="seed for unwritten reads")
    args = parser.parse_args(argv)

    rng = random.Random(args.seed)
    out = sys.stdout
    memory = TracingMemory(rng, out)
    run_fn_vv_once("notmain", lambda: broken_example(memory, 4), out)
    run_fn_iu(
        "gpio_broken_example",
        functools.partial(broken_example, memory),
        pin_values(rng),
        out,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())