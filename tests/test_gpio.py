import pytest

from pifat import gpio
from pifat.gpio import (
    DictMemory,
    Gpio,
    GpioError,
    GpioFunction,
    function_offset,
    function_register,
    pin_valid,
)


@pytest.fixture
def mem():
    return DictMemory()


@pytest.fixture
def pins(mem):
    return Gpio(mem)


def test_function_register_bases():
    assert function_register(0) == 0x20200000
    assert function_register(9) == 0x20200000
    assert function_register(10) == 0x20200004
    assert function_register(54) == 0x20200014


def test_function_register_out_of_range():
    with pytest.raises(GpioError):
        function_register(60)


def test_function_offset_matches_register_layout():
    # Pin 2 uses bits 6-8.
    assert function_offset(2) == 6
    assert function_offset(12) == function_offset(2)


def test_pin_valid_bounds():
    assert pin_valid(0)
    assert pin_valid(54)
    assert not pin_valid(55)
    assert not pin_valid(-1)


def test_alt_function_register_encoding(pins, mem):
    pins.set_function(0, GpioFunction.ALT4)
    assert mem.get32(function_register(0)) == 3
    pins.set_function(1, GpioFunction.ALT5)
    assert mem.get32(function_register(1)) == 3 | (2 << 3)


@pytest.mark.parametrize("pin", [0, 9, 17, 30, 54])
@pytest.mark.parametrize("function", list(GpioFunction))
def test_set_get_function_round_trip(pins, pin, function):
    assert pins.set_function(pin, function) is function
    assert pins.get_function(pin) is function


def test_set_function_leaves_neighbours(pins):
    pins.set_function(20, GpioFunction.ALT3)
    pins.set_function(21, GpioFunction.ALT0)
    pins.set_function(22, GpioFunction.OUTPUT)
    pins.set_function(21, GpioFunction.INPUT)
    assert pins.get_function(20) is GpioFunction.ALT3
    assert pins.get_function(21) is GpioFunction.INPUT
    assert pins.get_function(22) is GpioFunction.OUTPUT


def test_set_input_output_predicates(pins):
    pins.set_output(4)
    assert pins.is_output(4)
    assert not pins.is_input(4)
    pins.set_input(4)
    assert pins.is_input(4)


def test_invalid_pin_raises(pins):
    with pytest.raises(GpioError):
        pins.set_function(55, GpioFunction.OUTPUT)
    with pytest.raises(GpioError):
        pins.get_function(100)


def test_invalid_function_raises(pins, mem):
    with pytest.raises(GpioError):
        pins.set_function(3, 8)
    assert mem.writes == []


def test_write_high_uses_set_register(pins, mem):
    pins.write(5, 1)
    assert mem.get32(gpio.GPSET0) == 1 << 5
    assert mem.get32(gpio.GPCLR0) == 0


def test_write_low_upper_bank_uses_clear_register(pins, mem):
    pins.write(40, 0)
    assert mem.get32(gpio.GPCLR1) == 1 << (40 - 32)
    assert mem.get32(gpio.GPSET1) == 0


def test_read_levels(pins, mem):
    mem.put32(gpio.GPLEV0, 1 << 3)
    mem.put32(gpio.GPLEV1, 1 << (33 - 32))
    assert pins.read(3) == 1
    assert pins.read(4) == 0
    assert pins.read(33) == 1
    assert pins.read(34) == 0


def test_edge_detection_bits(pins, mem):
    pins.detect_rising_edge(7)
    pins.detect_falling_edge(7)
    pins.detect_falling_edge(35)
    assert mem.get32(gpio.GPREN0) == 1 << 7
    assert mem.get32(gpio.GPFEN0) == 1 << 7
    assert mem.get32(gpio.GPFEN1) == 1 << (35 - 32)


def test_check_event(pins, mem):
    mem.put32(gpio.GPEDS0, 1 << 12)
    assert pins.check_event(12) is True
    assert pins.check_event(13) is False


def test_check_and_clear_event(pins, mem):
    mem.put32(gpio.GPEDS1, 1 << (45 - 32))
    assert pins.check_and_clear_event(45) is True
    assert mem.writes[-1] == (gpio.GPEDS1, 1 << (45 - 32))
    mem.put32(gpio.GPEDS0, 0)
    assert pins.check_and_clear_event(2) is False


def test_pullup_sequence(pins, mem):
    pins.set_pullup(6)
    assert mem.writes == [
        (gpio.GPPUD, gpio.PULL_UP),
        (gpio.GPPUDCLK0, 1 << 6),
        (gpio.GPPUD, 0),
        (gpio.GPPUDCLK0, 0),
    ]


def test_pulldown_upper_bank_sequence(pins, mem):
    pins.set_pulldown(40)
    assert mem.writes == [
        (gpio.GPPUD, gpio.PULL_DOWN),
        (gpio.GPPUDCLK1, 1 << (40 & 0x1F)),
        (gpio.GPPUD, 0),
        (gpio.GPPUDCLK0, 0),
    ]


def test_dict_memory_masks_to_32_bits(mem):
    mem.put32(0x1000, (1 << 32) + 7)
    assert mem.get32(0x1000) == 7
    assert mem.get32(0x2000) == 0