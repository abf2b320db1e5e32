"""Checks, classification and descriptions of MBR and FAT32 structures."""

from __future__ import annotations

import struct
from typing import Iterable, Sequence

from pifat.layout import (
    MBR_SIGNATURE,
    Attr,
    BootSector,
    ClusterType,
    DirEntry,
    Fat32Error,
    FsInfo,
    LfnEntry,
    MasterBootRecord,
    PartitionEntry,
)
from pifat.utf8 import to_utf8

_PARTITION_TYPES = {
    0x00: "Empty",
    0x01: "FAT12 - CHS",
    0x04: "FAT16 - 16-32 MB - CHS",
    0x05: "Microsoft Extended - CHS",
    0x06: "FAT16 - 32 MB-2 GB - CHS",
    0x07: "NTFS",
    0x0B: "FAT32 - CHS",
    0x0C: "FAT32 - LBA",
    0x0E: "FAT16 - 32 MB-2 GB - LBA",
    0x0F: "Microsoft Extended - LBA",
    0x11: "Hidden FAT12 - CHS",
    0x14: "Hidden FAT16 - 16-32 MB - CHS",
    0x16: "Hidden FAT16 - 32 MB-2 GB - CHS",
    0x1B: "Hidden FAT32 - CHS",
    0x1C: "Hidden FAT32 - LBA",
    0x1E: "Hidden FAT16 - 32 MB-2 GB - LBA",
    0x42: "Microsoft MBR - Dynamic Disk",
    0x82: "Solaris x86 or Linux swap?",
    0x83: "Linux",
    0x84: "Hibernation",
    0x85: "Linux Extended",
    0x86: "NTFS Volume Set",
    0x87: "NTFS Volume Set",
    0xA0: "Hibernation",
    0xA1: "Hibernation",
    0xA5: "FreeBSD",
    0xA6: "OpenBSD",
    0xA8: "Mac OSX",
    0xA9: "NetBSD",
    0xAB: "Mac OSX Boot",
    0xB7: "BSDI",
    0xB8: "BSDI swap",
    0xEE: "EFI GPT Disk",
    0xEF: "EFI System Partition",
    0xFB: "Vmware File System",
    0xFC: "Vmware swap",
}

_FAT32_PARTITION_TYPES = (0x0B, 0x0C)
_FSINFO_SIGS = (0x41615252, 0x61417272, 0xAA550000)
_FAT_MASK = 0x0FFFFFFF
_MACOS_LOWER_CASE = 0x18


def _require(ok: bool, what: str) -> None:
    if not ok:
        raise Fat32Error(what)


# ---------------------------------------------------------------- master boot record


def partition_type_name(code: int) -> str:
    """Name of an MBR partition type code."""
    try:
        return _PARTITION_TYPES[code]
    except KeyError:
        raise Fat32Error(f"unknown partition type: {code:x}") from None


def partition_is_empty(data) -> bool:
    """True if a 16-byte partition slot is all zeros."""
    raw = data.to_bytes() if isinstance(data, PartitionEntry) else bytes(data)
    return not any(raw[: PartitionEntry.SIZE])


def check_mbr(mbr: MasterBootRecord) -> MasterBootRecord:
    """Verify the boot record signature; return the record."""
    _require(mbr.sigval == MBR_SIGNATURE, f"bad MBR signature: {mbr.sigval:x}")
    return mbr


def check_partition(entry: PartitionEntry) -> PartitionEntry:
    """Verify that a partition holds FAT32; return the entry."""
    _require(
        entry.part_type in _FAT32_PARTITION_TYPES,
        f"partition type {entry.part_type:x} is not FAT32",
    )
    return entry


# ---------------------------------------------------------------- boot sector / fsinfo


def check_boot_sector(boot: BootSector) -> BootSector:
    """Verify the fields of a FAT32 volume boot sector; return it."""
    spc = boot.sec_per_cluster
    checks = (
        (boot.bytes_per_sec == 512, "bytes_per_sec must be 512"),
        (boot.nfats == 2, "nfats must be 2"),
        (boot.sig == MBR_SIGNATURE, "bad boot sector signature"),
        (spc & (spc - 1) == 0 if spc else True, "sec_per_cluster must be a power of 2"),
        (boot.bytes_per_sec in (512, 1024, 2048, 4096), "bad bytes_per_sec"),
        (boot.max_files == 0, "max_files must be 0 for FAT32"),
        (boot.fs_nsec == 0, "fs_nsec must be 0 for FAT32"),
        (boot.zero == 0, "16-bit FAT size must be 0 for FAT32"),
        (boot.nsec_in_fs != 0, "nsec_in_fs must not be 0"),
        (boot.info_sec_num == 1, "info_sec_num must be 1"),
        (boot.backup_boot_loc == 6, "backup_boot_loc must be 6"),
        (boot.extended_sig == 0x29, "extended_sig must be 0x29"),
    )
    for ok, what in checks:
        _require(ok, what)
    return boot


def check_fsinfo(info: FsInfo) -> FsInfo:
    """Verify the three fsinfo signatures; return the structure."""
    for n, (got, want) in enumerate(zip((info.sig1, info.sig2, info.sig3), _FSINFO_SIGS), 1):
        _require(got == want, f"fsinfo sig{n} is {got:x}, expected {want:x}")
    return info


# ---------------------------------------------------------------- FAT table


def fat_entry_type(value: int) -> ClusterType:
    """Classify a FAT table entry, ignoring its upper four bits."""
    x = value & _FAT_MASK
    if x in (ClusterType.FREE, ClusterType.RESERVED, ClusterType.BAD):
        return ClusterType(x)
    if 0x2 <= x <= 0xFFFFFEF:
        return ClusterType.USED
    if 0xFFFFFF0 <= x <= 0xFFFFFF6:
        raise Fat32Error(f"reserved value: {x:x}")
    return ClusterType.LAST


def fat_entry_type_name(kind: int) -> str:
    """Name of a cluster type, such as ``LAST_CLUSTER``."""
    try:
        return f"{ClusterType(kind).name}_CLUSTER"
    except ValueError:
        raise Fat32Error(f"bad value: {kind:x}") from None


# ---------------------------------------------------------------- long file names


def is_attr(value: int, flag: int) -> bool:
    """True if every bit of ``flag`` is set in ``value``."""
    return value & flag == flag


def lfn_checksum(short_name: bytes) -> int:
    """Checksum of an 11-byte short name, as stored in its long-name entries."""
    total = 0
    for byte in bytes(short_name)[:11]:
        total = (((total & 1) << 7) + (total >> 1) + byte) & 0xFF
    return total


def lfn_is_last(seqno: int) -> bool:
    """True for the entry holding the final part of a long name."""
    return seqno & 0x40 != 0


def lfn_is_first(seqno: int) -> bool:
    """True for the entry holding the first part of a long name."""
    return seqno & ~0x40 == 1


def lfn_is_deleted(seqno: int) -> bool:
    """True if the long-name entry is marked unallocated."""
    return seqno & 0xE5 == 0xE5


def _append_units(out: bytearray, field: bytes) -> None:
    for (unit,) in struct.iter_unpack("<H", field):
        if unit in (0x0000, 0xFFFF):
            break
        out += to_utf8(unit)


def lfn_name(entries: Sequence[LfnEntry]) -> str:
    """Rebuild a long file name from its entries in on-disk order."""
    out = bytearray()
    for entry in reversed(list(entries)):
        _require(entry.attr == Attr.LONG_FILE_NAME, "entry is not a long-name entry")
        for field in (entry.name1_5, entry.name6_11, entry.name12_13):
            _append_units(out, field)
    return out.decode("utf-8", "surrogatepass")


def check_lfn(entries: Iterable[LfnEntry], cksum: int) -> list:
    """Verify a run of long-name entries against a checksum; return them."""
    run = list(entries)
    _require(len(run) >= 1, "no long-name entries")
    _require(len(run) < 3, "more than two long-name entries")
    for entry in run:
        _require(not lfn_is_deleted(entry.seqno), "long-name entry is deleted")
        _require(
            entry.cksum == cksum,
            f"long-name checksum {entry.cksum:x}, expected {cksum:x}",
        )
    _require(lfn_is_last(run[0].seqno), "first stored entry is not marked last")
    _require(lfn_is_first(run[-1].seqno), "last stored entry is not sequence 1")
    return run


# ---------------------------------------------------------------- directory entries


def dirent_free(entry) -> bool:
    """True if a directory entry is unallocated."""
    first = entry.seqno if isinstance(entry, LfnEntry) else entry.filename[0]
    if entry.attr == Attr.LONG_FILE_NAME:
        return lfn_is_deleted(first)
    return first in (0x00, 0xE5)


def dir_filename(entries: Sequence, index: int) -> tuple:
    """Return ``(name, short_index)`` for the entry at ``index``.

    For a long name, ``short_index`` is the position of the short entry that
    follows the run of long-name entries.
    """
    entry = entries[index]
    _require(not dirent_free(entry), "directory entry is free")

    if entry.attr == Attr.LONG_FILE_NAME:
        end = index + 1
        while end < len(entries) and entries[end].attr == Attr.LONG_FILE_NAME:
            end += 1
        _require(end < len(entries), "long name has no short entry after it")
        short = entries[end]
        _require(
            is_attr(short.attr, Attr.DIR) or is_attr(short.attr, Attr.ARCHIVE),
            f"unexpected attr after long name: {short.attr:x}",
        )
        return lfn_name(entries[index:end]), end

    _require(
        any(is_attr(entry.attr, f) for f in (Attr.DIR, Attr.ARCHIVE, Attr.VOLUME_LABEL)),
        f"unhandled attr: {entry.attr:x}",
    )
    raw = bytes(entry.filename)
    if entry.reserved0 == _MACOS_LOWER_CASE:
        raw = raw.lower()
    base = raw[:8].replace(b" ", b"")
    return (base + b"." + raw[8:11]).decode("latin-1"), index


def dir_attr_str(attr: int) -> str:
    """Human-readable description of a directory entry attribute."""
    if attr == Attr.LONG_FILE_NAME:
        return " LONG FILE NAME"
    text = ""
    if is_attr(attr, Attr.RO):
        text += "R/O"
        attr &= ~Attr.RO
    if is_attr(attr, Attr.HIDDEN):
        text += " HIDDEN"
        attr &= ~Attr.HIDDEN
    kinds = {
        Attr.SYSTEM_FILE: " SYSTEM FILE",
        Attr.VOLUME_LABEL: " VOLUME LABEL",
        Attr.DIR: " DIR",
        Attr.ARCHIVE: " ARCHIVE",
    }
    try:
        return text + kinds[int(attr)]
    except KeyError:
        raise Fat32Error(f"unhandled attr={int(attr):x}") from None


# ---------------------------------------------------------------- descriptions


def _cstr(raw: bytes) -> str:
    return bytes(raw).split(b"\0", 1)[0].decode("latin-1")


def describe_partition(msg: str, entry: PartitionEntry) -> str:
    """Describe a partition entry; raises if it is not a FAT32 partition."""
    text = (
        f"{msg}:\n"
        f"\tbootable  = {'true' if entry.bootable else 'false'}\n"
        f"\tchs_start = {entry.chs_start:x}\n"
        f"\tpart type = {entry.part_type:x} ({partition_type_name(entry.part_type)})\n"
        f"\tchs_end   = {entry.chs_end:x}\n"
        f"\tlba_start = {entry.lba_start:x}\n"
        f"\tnsec      = {entry.nsec} ({entry.nsec // (2 * 1024 * 1024)}GB)\n"
    )
    check_partition(entry)
    return text


def describe_boot_sector(msg: str, boot: BootSector) -> str:
    """Describe a boot sector; raises if it fails the FAT32 checks."""
    text = (
        f"{msg}:\n"
        f"\toem               = <{_cstr(boot.oem)}>\n"
        f"\tbytes_per_sec     = {boot.bytes_per_sec}\n"
        f"\tsec_per_cluster   = {boot.sec_per_cluster}\n"
        f"\treserved size     = {boot.reserved_area_nsec}\n"
        f"\tnfats             = {boot.nfats}\n"
        f"\tmax_files         = {boot.max_files}\n"
        f"\tfs n sectors      = {boot.fs_nsec}\n"
        f"\tmedia type        = {boot.media_type:x}\n"
        f"\tsec per track     = {boot.sec_per_track}\n"
        f"\tn heads           = {boot.n_heads}\n"
        f"\tn hidden secs     = {boot.hidden_secs}\n"
        f"\tn nsec in FS      = {boot.nsec_in_fs}\n"
        f"\tn nsec per fat    = {boot.nsec_per_fat}\n"
        f"\tn mirror flags    = {boot.mirror_flags:b}\n"
        f"\tn version         = {boot.version}\n"
        f"\tn first_cluster   = {boot.first_cluster}\n"
        f"\tn info_sec_num    = {boot.info_sec_num}\n"
        f"\tn back_boot_loc   = {boot.backup_boot_loc}\n"
        f"\tn logical_drive_num= {boot.logical_drive_num}\n"
        f"\tn extended sig    = {boot.extended_sig:x}\n"
        f"\tn serial_num      = {boot.serial_num:x}\n"
        f"\tn volume label    = <{_cstr(boot.volume_label)}>\n"
        f"\tn fs_type         = <{_cstr(boot.fs_type)}>\n"
        f"\tn sig             = {boot.sig:x}\n"
    )
    check_boot_sector(boot)
    return text


def describe_fsinfo(msg: str, info: FsInfo) -> str:
    """Describe an fsinfo sector."""
    return (
        f"{msg}:\n"
        f"\tsig1              = {info.sig1:x}\n"
        f"\tsig2              = {info.sig2:x}\n"
        f"\tsig3              = {info.sig3:x}\n"
        f"\tfree cluster cnt  = {info.free_cluster_count}\n"
        f"\tnext free cluster = {info.next_free_cluster:x}\n"
    )


def hex_dump(msg: str, data: bytes) -> str:
    """Hex listing of ``data``, sixteen bytes per line."""
    parts = [f"{msg}\n"]
    for i, byte in enumerate(bytes(data)):
        if i % 16 == 0:
            parts.append("\n\t")
        parts.append(f"{byte:x}, ")
    parts.append("\n")
    return "".join(parts)