"""On-disk structures of the master boot record and a FAT32 volume."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import ClassVar, Union

SECTOR_SIZE = 512
DIRENT_SIZE = 32
NDIR_PER_SEC = SECTOR_SIZE // DIRENT_SIZE
MBR_SIGNATURE = 0xAA55


class Fat32Error(ValueError):
    """Raised for malformed or inconsistent FAT32 data."""


class Attr(enum.IntFlag):
    """Directory entry attribute bits."""

    RO = 0x01
    HIDDEN = 0x02
    SYSTEM_FILE = 0x04
    VOLUME_LABEL = 0x08
    LONG_FILE_NAME = 0x0F
    DIR = 0x10
    ARCHIVE = 0x20


class ClusterType(enum.IntEnum):
    """Classification of a FAT table entry."""

    FREE = 0
    RESERVED = 0x1
    BAD = 0xFFFFFF7
    LAST = 0xFFFFFF8
    USED = 0xFFFFFF9


def _exact(data: bytes, size: int, what: str) -> bytes:
    raw = bytes(data)
    if len(raw) != size:
        raise Fat32Error(f"{what}: expected {size} bytes, got {len(raw)}")
    return raw


def _pack(fmt: struct.Struct, what: str, *values) -> bytes:
    try:
        return fmt.pack(*values)
    except struct.error as exc:
        raise Fat32Error(f"{what}: {exc}") from exc


@dataclass(frozen=True)
class PartitionEntry:
    """One 16-byte partition table entry."""

    bootable: int = 0
    chs_start: int = 0
    part_type: int = 0
    chs_end: int = 0
    lba_start: int = 0
    nsec: int = 0

    SIZE: ClassVar[int] = 16
    _FMT: ClassVar[struct.Struct] = struct.Struct("<B3sB3sII")

    @classmethod
    def from_bytes(cls, data: bytes) -> "PartitionEntry":
        raw = _exact(data, cls.SIZE, "partition entry")
        boot, chs_start, ptype, chs_end, lba, nsec = cls._FMT.unpack(raw)
        return cls(
            bootable=boot,
            chs_start=int.from_bytes(chs_start, "little"),
            part_type=ptype,
            chs_end=int.from_bytes(chs_end, "little"),
            lba_start=lba,
            nsec=nsec,
        )

    def to_bytes(self) -> bytes:
        for name in ("chs_start", "chs_end"):
            if not 0 <= getattr(self, name) < 1 << 24:
                raise Fat32Error(f"partition entry: {name} does not fit in 24 bits")
        return _pack(
            self._FMT,
            "partition entry",
            self.bootable,
            self.chs_start.to_bytes(3, "little"),
            self.part_type,
            self.chs_end.to_bytes(3, "little"),
            self.lba_start,
            self.nsec,
        )


_EMPTY_TABLE = bytes(PartitionEntry.SIZE)


@dataclass(frozen=True)
class MasterBootRecord:
    """The first sector of a disk: boot code, four partition slots, signature."""

    boot_code: bytes = b""
    partition_tables: tuple = (_EMPTY_TABLE,) * 4
    sigval: int = 0

    SIZE: ClassVar[int] = SECTOR_SIZE
    BOOT_CODE_SIZE: ClassVar[int] = 446

    @classmethod
    def from_bytes(cls, data: bytes) -> "MasterBootRecord":
        raw = _exact(data, cls.SIZE, "master boot record")
        start = cls.BOOT_CODE_SIZE
        tables = tuple(
            raw[start + i * PartitionEntry.SIZE : start + (i + 1) * PartitionEntry.SIZE]
            for i in range(4)
        )
        return cls(
            boot_code=raw[:start],
            partition_tables=tables,
            sigval=int.from_bytes(raw[510:512], "little"),
        )

    @property
    def partitions(self) -> tuple:
        """The four partition slots, parsed."""
        return tuple(PartitionEntry.from_bytes(t) for t in self.partition_tables)

    def to_bytes(self) -> bytes:
        if len(self.boot_code) > self.BOOT_CODE_SIZE:
            raise Fat32Error("master boot record: boot code too long")
        if len(self.partition_tables) != 4 or any(
            len(t) != PartitionEntry.SIZE for t in self.partition_tables
        ):
            raise Fat32Error("master boot record: need four 16-byte partition slots")
        if not 0 <= self.sigval <= 0xFFFF:
            raise Fat32Error("master boot record: signature does not fit in 16 bits")
        return (
            bytes(self.boot_code).ljust(self.BOOT_CODE_SIZE, b"\0")
            + b"".join(bytes(t) for t in self.partition_tables)
            + self.sigval.to_bytes(2, "little")
        )


@dataclass(frozen=True)
class FsInfo:
    """The FAT32 file system information sector."""

    sig1: int = 0
    sig2: int = 0
    free_cluster_count: int = 0
    next_free_cluster: int = 0
    sig3: int = 0

    SIZE: ClassVar[int] = SECTOR_SIZE
    _FMT: ClassVar[struct.Struct] = struct.Struct("<I480sIII12sI")

    @classmethod
    def from_bytes(cls, data: bytes) -> "FsInfo":
        raw = _exact(data, cls.SIZE, "fsinfo")
        sig1, _r0, sig2, free, nxt, _r1, sig3 = cls._FMT.unpack(raw)
        return cls(sig1, sig2, free, nxt, sig3)

    def to_bytes(self) -> bytes:
        return _pack(
            self._FMT,
            "fsinfo",
            self.sig1,
            b"",
            self.sig2,
            self.free_cluster_count,
            self.next_free_cluster,
            b"",
            self.sig3,
        )


_BOOT_FIELDS = (
    "asm_code", "oem", "bytes_per_sec", "sec_per_cluster", "reserved_area_nsec",
    "nfats", "max_files", "fs_nsec", "media_type", "zero", "sec_per_track",
    "n_heads", "hidden_secs", "nsec_in_fs", "nsec_per_fat", "mirror_flags",
    "version", "first_cluster", "info_sec_num", "backup_boot_loc", "reserved",
    "logical_drive_num", "reserved1", "extended_sig", "serial_num",
    "volume_label", "fs_type", "ignore", "sig",
)


@dataclass(frozen=True)
class BootSector:
    """The FAT32 volume boot sector (volume ID)."""

    asm_code: bytes = b""
    oem: bytes = b""
    bytes_per_sec: int = 0
    sec_per_cluster: int = 0
    reserved_area_nsec: int = 0
    nfats: int = 0
    max_files: int = 0
    fs_nsec: int = 0
    media_type: int = 0
    zero: int = 0
    sec_per_track: int = 0
    n_heads: int = 0
    hidden_secs: int = 0
    nsec_in_fs: int = 0
    nsec_per_fat: int = 0
    mirror_flags: int = 0
    version: int = 0
    first_cluster: int = 0
    info_sec_num: int = 0
    backup_boot_loc: int = 0
    reserved: bytes = b""
    logical_drive_num: int = 0
    reserved1: int = 0
    extended_sig: int = 0
    serial_num: int = 0
    volume_label: bytes = b""
    fs_type: bytes = b""
    ignore: bytes = field(default=b"", repr=False)
    sig: int = 0

    SIZE: ClassVar[int] = SECTOR_SIZE
    _FMT: ClassVar[struct.Struct] = struct.Struct(
        "<3s8sHBHBHHBHHHIIIHHIHH12sBBBI11s8s420sH"
    )

    @classmethod
    def from_bytes(cls, data: bytes) -> "BootSector":
        raw = _exact(data, cls.SIZE, "boot sector")
        return cls(**dict(zip(_BOOT_FIELDS, cls._FMT.unpack(raw))))

    def to_bytes(self) -> bytes:
        values = [getattr(self, name) for name in _BOOT_FIELDS]
        return _pack(self._FMT, "boot sector", *values)


@dataclass(frozen=True)
class DirEntry:
    """A 32-byte short-name directory entry."""

    filename: bytes = bytes(11)
    attr: int = 0
    reserved0: int = 0
    ctime_tenths: int = 0
    ctime: int = 0
    create_date: int = 0
    access_date: int = 0
    hi_start: int = 0
    mod_time: int = 0
    mod_date: int = 0
    lo_start: int = 0
    file_nbytes: int = 0

    SIZE: ClassVar[int] = DIRENT_SIZE
    _FMT: ClassVar[struct.Struct] = struct.Struct("<11sBBBHHHHHHHI")

    @classmethod
    def from_bytes(cls, data: bytes) -> "DirEntry":
        raw = _exact(data, cls.SIZE, "directory entry")
        return cls(*cls._FMT.unpack(raw))

    def to_bytes(self) -> bytes:
        return _pack(
            self._FMT,
            "directory entry",
            self.filename,
            self.attr,
            self.reserved0,
            self.ctime_tenths,
            self.ctime,
            self.create_date,
            self.access_date,
            self.hi_start,
            self.mod_time,
            self.mod_date,
            self.lo_start,
            self.file_nbytes,
        )

    def first_cluster(self) -> int:
        """The first cluster of the entry's data."""
        return (self.hi_start << 16) | self.lo_start


@dataclass(frozen=True)
class LfnEntry:
    """A 32-byte long-file-name directory entry."""

    seqno: int = 0
    name1_5: bytes = bytes(10)
    attr: int = int(Attr.LONG_FILE_NAME)
    reserved: int = 0
    cksum: int = 0
    name6_11: bytes = bytes(12)
    reserved1: int = 0
    name12_13: bytes = bytes(4)

    SIZE: ClassVar[int] = DIRENT_SIZE
    _FMT: ClassVar[struct.Struct] = struct.Struct("<B10sBBB12sH4s")

    @classmethod
    def from_bytes(cls, data: bytes) -> "LfnEntry":
        raw = _exact(data, cls.SIZE, "long file name entry")
        return cls(*cls._FMT.unpack(raw))

    def to_bytes(self) -> bytes:
        return _pack(
            self._FMT,
            "long file name entry",
            self.seqno,
            self.name1_5,
            self.attr,
            self.reserved,
            self.cksum,
            self.name6_11,
            self.reserved1,
            self.name12_13,
        )

    @property
    def name_bytes(self) -> bytes:
        """The 26 bytes of UTF-16LE name characters held by this entry."""
        return self.name1_5 + self.name6_11 + self.name12_13


Entry = Union[DirEntry, LfnEntry]


def parse_directory(data: bytes) -> list:
    """Split raw directory data into short-name and long-name entries."""
    raw = bytes(data)
    if len(raw) % DIRENT_SIZE:
        raise Fat32Error(
            f"directory data is {len(raw)} bytes, not a multiple of {DIRENT_SIZE}"
        )
    entries: list = []
    for start in range(0, len(raw), DIRENT_SIZE):
        chunk = raw[start : start + DIRENT_SIZE]
        if chunk[11] == Attr.LONG_FILE_NAME:
            entries.append(LfnEntry.from_bytes(chunk))
        else:
            entries.append(DirEntry.from_bytes(chunk))
    return entries