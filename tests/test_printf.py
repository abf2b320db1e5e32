import io

import pytest

from pifat.printf import PrintfError, format_string, printf, snprintf


@pytest.mark.parametrize(
    "fmt, value",
    [
        ("%d", 42),
        ("%5d", -17),
        ("%12d", 123456),
        ("%d", 0),
        ("%x", 255),
        ("%8x", 0xDEADBEEF),
        ("%u", 7),
        ("%3c", 65),
        ("%c", 97),
        ("%31d", -99),
    ],
)
def test_matches_c_style_formatting(fmt, value):
    assert format_string(fmt, value) == fmt % value


@pytest.mark.parametrize("fmt", ["%x", "%10x", "%u"])
def test_negative_is_unsigned_for_hex_and_u(fmt):
    assert format_string(fmt, -1) == fmt % 0xFFFFFFFF


def test_d_wraps_to_int32():
    assert format_string("%d", 2**31) == "%d" % -(2**31)
    assert format_string("%d", 2**32 + 5) == "5"


def test_binary_and_pointer():
    assert format_string("%b", 37) == format(37, "b")
    assert format_string("%p", 4096) == format_string("%x", 4096)
    assert format_string("%10b", 5) == format(5, "b").rjust(10)


def test_percent_and_strings():
    assert format_string("100%% <%s>", "abc") == "100% <abc>"
    assert format_string("%s", b"raw\0tail") == "raw"
    assert format_string("%c", "z") == "z"


@pytest.mark.parametrize("size", range(1, 12))
def test_snprintf_truncates_like_c(size):
    expected = ("%8d|%x" % (-1234, 171))[: size - 1]
    assert snprintf(size, "%8d|%x", -1234, 171) == expected


def test_snprintf_full_length():
    text = format_string("n=%d, s=%s", 12, "ok")
    assert snprintf(len(text) + 1, "n=%d, s=%s", 12, "ok") == text


def test_truncation_stops_before_bad_specifier():
    assert snprintf(2, "ab%q") == "a"


def test_float_formatting():
    assert format_string("%f", 2.5) == "2.5000"
    assert format_string("%f", -1.25) == "-1.2500"


@pytest.mark.parametrize(
    "fmt, args",
    [
        ("%q", (1,)),
        ("%32d", (1,)),
        ("%d", ()),
        ("abc%", ()),
        ("%d", ("x",)),
        ("%s", (3,)),
    ],
)
def test_errors(fmt, args):
    with pytest.raises(PrintfError):
        format_string(fmt, *args)


def test_snprintf_size_zero():
    with pytest.raises(ValueError):
        snprintf(0, "x")


def test_printf_writes_and_counts():
    buf = io.StringIO()
    count = printf("x=%d\n", 7, file=buf)
    assert buf.getvalue() == "x=7\n"
    assert count == len(buf.getvalue())


def test_printf_limited_to_buffer():
    buf = io.StringIO()
    count = printf("%s", "a" * 2000, file=buf)
    assert count == 1023
    assert buf.getvalue() == "a" * 1023


def test_printf_default_stdout(capsys):
    printf("hello %s\n", "world")
    assert capsys.readouterr().out == "hello world\n"