"""Find a USB serial device, set it to 8n1 and echo what the board prints."""

from __future__ import annotations

import argparse
import codecs
import os
import sys
import time
from pathlib import Path
from typing import Optional, TextIO

EXIT_STRING = "DONE!!!"
TTY_PREFIXES = (
    "ttyUSB",  # linux
    "cu.SLAB_USB",  # mac os
)
DEFAULT_SPEED = 115200
DEFAULT_TIMEOUT = 1.0
_READ_SIZE = 4095
_IDLE_SECONDS = 0.001
_CLOSED_MESSAGE = "pi connection closed.  cleaning up\n"
_EXITED_MESSAGE = "\nbootloader: pi exited.  cleaning up\n"


class TtyError(OSError):
    """Raised when the serial device cannot be found, opened or configured."""


class ExitDetector:
    """Watches a stream of text for the string the board prints when it is done.

    A character that breaks a partial match is dropped rather than
    re-examined as the start of a new match.
    """

    def __init__(self, marker: str = EXIT_STRING):
        if not marker:
            raise ValueError("exit marker must not be empty")
        self.marker = marker
        self._pos = 0

    def feed(self, text: str) -> bool:
        """Consume ``text``; True once the whole marker has been seen."""
        for ch in text:
            if ch != self.marker[self._pos]:
                self._pos = 0
                continue
            self._pos += 1
            if self._pos == len(self.marker):
                self._pos = 0
                return True
        return False


def find_tty(dev_dir="/dev") -> Path:
    """The single USB serial device in ``dev_dir``."""
    directory = Path(dev_dir)
    try:
        names = sorted(
            entry.name
            for entry in directory.iterdir()
            if entry.name.startswith(TTY_PREFIXES)
        )
    except OSError as exc:
        raise TtyError(f"scandir {directory}: {exc}") from exc
    if not names:
        raise TtyError(f"did not find any tty in {directory}")
    if len(names) > 1:
        listing = "\n".join(reversed(names))
        raise TtyError(f"found more than one tty?\n{listing}")
    return directory / names[0]


def open_tty(portname=None, dev_dir="/dev") -> tuple:
    """Open the serial device read-write; return ``(fd, path)``.

    With no ``portname`` the device is searched for in ``dev_dir``.
    """
    path = Path(portname) if portname is not None else find_tty(dev_dir)
    flags = os.O_RDWR | getattr(os, "O_NOCTTY", 0) | getattr(os, "O_SYNC", 0)
    try:
        fd = os.open(path, flags)
    except OSError as exc:
        raise TtyError(f"couldn't open tty port <{path}>: {exc}") from exc
    return fd, path


def configure_8n1(fd: int, speed: int = DEFAULT_SPEED, timeout: float = DEFAULT_TIMEOUT) -> int:
    """Put the terminal on ``fd`` in raw 8n1 mode at ``speed`` baud; return ``fd``.

    ``timeout`` is the read timeout in seconds; only its whole part is used.
    """
    import termios

    if not 0 < timeout < 100:
        raise ValueError(f"timeout must lie between 0 and 100 seconds, got {timeout}")
    baud = getattr(termios, f"B{speed}", None)
    if baud is None:
        raise ValueError(f"unsupported speed: {speed}")

    try:
        attrs = termios.tcgetattr(fd)
    except termios.error as exc:
        raise TtyError(f"tcgetattr failed: {exc}") from exc

    cc = [b"\0" if isinstance(c, bytes) else 0 for c in attrs[6]]
    cc[termios.VMIN] = 0
    cc[termios.VTIME] = int(timeout) * 10

    crtscts = getattr(termios, "CRTSCTS", 0)
    cflag = (termios.CS8 | termios.CREAD | termios.CLOCAL) & ~crtscts
    new_attrs = [0, 0, cflag, 0, baud, baud, cc]
    try:
        termios.tcsetattr(fd, termios.TCSANOW, new_attrs)
    except termios.error as exc:
        raise TtyError(f"tcsetattr failed: {exc}") from exc
    return fd


def echo(fd: int, portname, out: Optional[TextIO] = None) -> bool:
    """Copy what arrives on ``fd`` to ``out`` until the board finishes.

    Returns True when the exit marker was seen, False when the connection
    went away (a read error, or the device path disappearing).
    """
    out = out if out is not None else sys.stderr
    detector = ExitDetector()
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        try:
            chunk = os.read(fd, _READ_SIZE)
        except OSError:
            out.write(_CLOSED_MESSAGE)
            return False
        if not chunk:
            if not os.path.exists(portname):
                out.write(_CLOSED_MESSAGE)
                return False
            time.sleep(_IDLE_SECONDS)
            continue
        text = decoder.decode(chunk.split(b"\0", 1)[0])
        out.write(text)
        out.flush()
        if detector.feed(text):
            out.write(_EXITED_MESSAGE)
            return True


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="pi-cat",
        description="Echo the output of a board attached through a USB serial device.",
    )
    parser.add_argument("port", nargs="?", help="path of the serial device")
    parser.add_argument("--dev-dir", default="/dev", help="where to look for the device")
    args = parser.parse_args(argv)

    try:
        fd, path = open_tty(args.port, args.dev_dir)
    except TtyError as exc:
        print(f"pi-cat: {exc}", file=sys.stderr)
        return 1
    try:
        if args.port is None:
            print(f"FOUND: <{path}>", file=sys.stderr)
        configure_8n1(fd, DEFAULT_SPEED, DEFAULT_TIMEOUT)
        echo(fd, path, sys.stderr)
    except TtyError as exc:
        print(f"pi-cat: {exc}", file=sys.stderr)
        return 1
    finally:
        os.close(fd)
    return 0


if __name__ == "__main__":
    sys.exit(main())