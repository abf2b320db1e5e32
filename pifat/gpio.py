"""Function select, level, edge and pull control of the BCM2835 GPIO pins."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Protocol

PIN_FIRST = 0
PIN_LAST = 54
_MASK32 = 0xFFFFFFFF
_PULL_SETTLE_SECONDS = 5e-6

GPFSEL = (0x20200000, 0x20200004, 0x20200008, 0x2020000C, 0x20200010, 0x20200014)
GPSET0, GPSET1 = 0x2020001C, 0x20200020
GPCLR0, GPCLR1 = 0x20200028, 0x2020002C
GPLEV0, GPLEV1 = 0x20200034, 0x20200038
GPEDS0, GPEDS1 = 0x20200040, 0x20200044
GPREN0, GPREN1 = 0x2020004C, 0x20200050
GPFEN0, GPFEN1 = 0x20200058, 0x2020005C
GPPUD = 0x20200094
GPPUDCLK0, GPPUDCLK1 = 0x20200098, 0x2020009C

PULL_DOWN = 1
PULL_UP = 2


class GpioError(ValueError):
    """Raised for an invalid pin or pin function."""


class GpioFunction(enum.IntEnum):
    """The eight function-select codes of a pin."""

    INPUT = 0
    OUTPUT = 1
    ALT0 = 4
    ALT1 = 5
    ALT2 = 6
    ALT3 = 7
    ALT4 = 3
    ALT5 = 2


class Memory(Protocol):
    def get32(self, addr: int) -> int: ...

    def put32(self, addr: int, value: int) -> None: ...


@dataclass
class DictMemory:
    """A 32-bit memory held in a dictionary; unwritten words read as zero.

    Every store is also appended to ``writes`` as an ``(addr, value)`` pair.
    """

    values: dict = field(default_factory=dict)
    writes: list = field(default_factory=list)

    def get32(self, addr: int) -> int:
        return self.values.get(addr, 0)

    def put32(self, addr: int, value: int) -> None:
        value &= _MASK32
        self.values[addr] = value
        self.writes.append((addr, value))


def pin_valid(pin: int) -> bool:
    """True if ``pin`` names a GPIO pin."""
    return PIN_FIRST <= pin <= PIN_LAST


def _require_pin(pin: int) -> None:
    if not pin_valid(pin):
        raise GpioError(f"invalid pin: {pin}")


def function_register(pin: int) -> int:
    """Address of the function-select register that holds ``pin``."""
    bank = pin // 10
    if not 0 <= bank < len(GPFSEL):
        raise GpioError(f"no function-select register for pin {pin}")
    return GPFSEL[bank]


def function_offset(pin: int) -> int:
    """Bit offset of the pin's three function bits within its register."""
    return (pin % 10) * 3


def _bank(pin: int, low: int, high: int) -> tuple:
    return (low if pin <= 31 else high), pin % 32


class Gpio:
    """GPIO controller working on a memory-mapped register file."""

    def __init__(self, memory: Memory):
        self.memory = memory

    def get_function(self, pin: int) -> GpioFunction:
        _require_pin(pin)
        value = self.memory.get32(function_register(pin))
        return GpioFunction((value >> function_offset(pin)) & 0x7)

    def set_function(self, pin: int, function: int) -> GpioFunction:
        _require_pin(pin)
        try:
            function = GpioFunction(function)
        except ValueError:
            raise GpioError(f"invalid function: {function}") from None
        reg = function_register(pin)
        offset = function_offset(pin)
        value = self.memory.get32(reg) & ~(0x7 << offset)
        self.memory.put32(reg, (value | (function << offset)) & _MASK32)
        return function

    def set_input(self, pin: int) -> GpioFunction:
        return self.set_function(pin, GpioFunction.INPUT)

    def set_output(self, pin: int) -> GpioFunction:
        return self.set_function(pin, GpioFunction.OUTPUT)

    def is_input(self, pin: int) -> bool:
        return self.get_function(pin) is GpioFunction.INPUT

    def is_output(self, pin: int) -> bool:
        return self.get_function(pin) is GpioFunction.OUTPUT

    def read(self, pin: int) -> int:
        """Current level of the pin, 0 or 1."""
        reg, offset = _bank(pin, GPLEV0, GPLEV1)
        return (self.memory.get32(reg) >> offset) & 1

    def write(self, pin: int, value) -> None:
        """Drive the pin high for a true ``value``, low otherwise."""
        if value:
            reg, offset = _bank(pin, GPSET0, GPSET1)
        else:
            reg, offset = _bank(pin, GPCLR0, GPCLR1)
        self._set_bit(reg, offset)

    def detect_falling_edge(self, pin: int) -> None:
        self._set_bit(*_bank(pin, GPFEN0, GPFEN1))

    def detect_rising_edge(self, pin: int) -> None:
        self._set_bit(*_bank(pin, GPREN0, GPREN1))

    def check_event(self, pin: int) -> bool:
        reg, offset = _bank(pin, GPEDS0, GPEDS1)
        return bool(self.memory.get32(reg) & (1 << offset))

    def check_and_clear_event(self, pin: int) -> bool:
        """Report whether an event was detected, clearing it by writing a 1."""
        reg, offset = _bank(pin, GPEDS0, GPEDS1)
        mask = 1 << offset
        value = self.memory.get32(reg)
        self.memory.put32(reg, mask)
        return bool(value & mask)

    def set_pullup(self, pin: int) -> None:
        self._pull(pin, PULL_UP)

    def set_pulldown(self, pin: int) -> None:
        self._pull(pin, PULL_DOWN)

    def _set_bit(self, reg: int, offset: int) -> None:
        self.memory.put32(reg, (self.memory.get32(reg) | (1 << offset)) & _MASK32)

    def _pull(self, pin: int, pud: int) -> None:
        reg = GPPUDCLK0 if pin <= 31 else GPPUDCLK1
        for addr, value in (
            (GPPUD, pud & 3),
            (reg, 1 << (pin & 0x1F)),
            (GPPUD, 0),
            (GPPUDCLK0, 0),
        ):
            self.memory.put32(addr, value)
            time.sleep(_PULL_SETTLE_SECONDS)