import dataclasses

import pytest

from pifat import helpers
from pifat.layout import (
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

SHORT = b"FOO     TXT"


def make_lfn(name, short=SHORT):
    data = name.encode("utf-16-le")
    if len(data) % 26:
        data += b"\0\0"
    if len(data) % 26:
        data += b"\xff" * (26 - len(data) % 26)
    chunks = [data[i : i + 26] for i in range(0, len(data), 26)]
    cksum = helpers.lfn_checksum(short)
    entries = []
    for seq, chunk in enumerate(chunks, 1):
        seqno = seq | 0x40 if seq == len(chunks) else seq
        entries.append(
            LfnEntry(
                seqno=seqno,
                name1_5=chunk[:10],
                cksum=cksum,
                name6_11=chunk[10:22],
                name12_13=chunk[22:26],
            )
        )
    return list(reversed(entries)), cksum


@pytest.fixture
def boot():
    return BootSector(
        oem=b"MSWIN4.1",
        bytes_per_sec=512,
        sec_per_cluster=8,
        reserved_area_nsec=32,
        nfats=2,
        nsec_in_fs=100000,
        nsec_per_fat=800,
        first_cluster=2,
        info_sec_num=1,
        backup_boot_loc=6,
        extended_sig=0x29,
        volume_label=b"NO NAME    ",
        fs_type=b"FAT32   ",
        sig=0xAA55,
    )


def test_partition_type_name():
    assert helpers.partition_type_name(0x0C) == "FAT32 - LBA"
    assert helpers.partition_type_name(0x0B) == "FAT32 - CHS"
    with pytest.raises(Fat32Error):
        helpers.partition_type_name(0x99)


def test_partition_is_empty():
    assert helpers.partition_is_empty(bytes(16)) is True
    assert helpers.partition_is_empty(b"\0" * 15 + b"\1") is False
    assert helpers.partition_is_empty(PartitionEntry(part_type=0x0C)) is False


def test_check_mbr():
    mbr = MasterBootRecord(sigval=0xAA55)
    assert helpers.check_mbr(mbr) is mbr
    with pytest.raises(Fat32Error):
        helpers.check_mbr(MasterBootRecord(sigval=0))


def test_check_partition():
    entry = PartitionEntry(part_type=0x0C)
    assert helpers.check_partition(entry) is entry
    with pytest.raises(Fat32Error):
        helpers.check_partition(PartitionEntry(part_type=0x83))


def test_check_boot_sector_accepts(boot):
    assert helpers.check_boot_sector(boot) is boot


@pytest.mark.parametrize(
    "change",
    [
        {"nfats": 1},
        {"bytes_per_sec": 1024},
        {"sig": 0},
        {"sec_per_cluster": 3},
        {"max_files": 1},
        {"fs_nsec": 1},
        {"zero": 1},
        {"nsec_in_fs": 0},
        {"info_sec_num": 0},
        {"backup_boot_loc": 0},
        {"extended_sig": 0},
    ],
)
def test_check_boot_sector_rejects(boot, change):
    with pytest.raises(Fat32Error):
        helpers.check_boot_sector(dataclasses.replace(boot, **change))


def test_check_fsinfo():
    good = FsInfo(sig1=0x41615252, sig2=0x61417272, sig3=0xAA550000)
    assert helpers.check_fsinfo(good) is good
    with pytest.raises(Fat32Error):
        helpers.check_fsinfo(dataclasses.replace(good, sig3=0))


@pytest.mark.parametrize(
    "value, kind",
    [
        (0, ClusterType.FREE),
        (1, ClusterType.RESERVED),
        (0xFFFFFF7, ClusterType.BAD),
        (0x0FFFFFFF, ClusterType.LAST),
        (0xFFFFFFF8, ClusterType.LAST),
        (5, ClusterType.USED),
        (0xF0000005, ClusterType.USED),
    ],
)
def test_fat_entry_type(value, kind):
    assert helpers.fat_entry_type(value) == kind


def test_fat_entry_type_reserved_raises():
    with pytest.raises(Fat32Error):
        helpers.fat_entry_type(0x0FFFFFF3)


def test_fat_entry_type_name():
    assert helpers.fat_entry_type_name(ClusterType.LAST) == "LAST_CLUSTER"
    assert helpers.fat_entry_type_name(ClusterType.FREE) == "FREE_CLUSTER"
    with pytest.raises(Fat32Error):
        helpers.fat_entry_type_name(42)


def test_is_attr():
    assert helpers.is_attr(0x30, Attr.DIR) is True
    assert helpers.is_attr(0x10, 0x30) is False


def test_lfn_checksum_properties():
    assert helpers.lfn_checksum(bytes(11)) == 0
    assert 0 <= helpers.lfn_checksum(SHORT) <= 0xFF
    assert helpers.lfn_checksum(SHORT) != helpers.lfn_checksum(b"BAR     TXT")


def test_lfn_sequence_flags():
    assert helpers.lfn_is_last(0x41) is True
    assert helpers.lfn_is_last(0x01) is False
    assert helpers.lfn_is_first(0x41) is True
    assert helpers.lfn_is_first(0x02) is False
    assert helpers.lfn_is_deleted(0xE5) is True
    assert helpers.lfn_is_deleted(0x41) is False


@pytest.mark.parametrize("name", ["hello.txt", "a_long_file_name.txt", "größe.txt", "abcdefghijklm"])
def test_lfn_name_round_trip(name):
    entries, _ = make_lfn(name)
    assert helpers.lfn_name(entries) == name


def test_lfn_name_rejects_short_entry():
    with pytest.raises(Fat32Error):
        helpers.lfn_name([DirEntry(filename=SHORT, attr=Attr.ARCHIVE)])


def test_check_lfn():
    entries, cksum = make_lfn("a_long_file_name.txt")
    assert helpers.check_lfn(entries, cksum) == entries
    with pytest.raises(Fat32Error):
        helpers.check_lfn(entries, (cksum + 1) & 0xFF)
    with pytest.raises(Fat32Error):
        helpers.check_lfn([], cksum)


def test_check_lfn_too_many_entries():
    entries, cksum = make_lfn("x" * 30)
    assert len(entries) == 3
    with pytest.raises(Fat32Error):
        helpers.check_lfn(entries, cksum)


def test_check_lfn_deleted_and_order():
    entries, cksum = make_lfn("hello.txt")
    with pytest.raises(Fat32Error):
        helpers.check_lfn([dataclasses.replace(entries[0], seqno=0xE5)], cksum)
    two, cksum2 = make_lfn("a_long_file_name.txt")
    with pytest.raises(Fat32Error):
        helpers.check_lfn(list(reversed(two)), cksum2)


def test_dirent_free():
    assert helpers.dirent_free(DirEntry(filename=bytes(11), attr=Attr.ARCHIVE)) is True
    assert helpers.dirent_free(DirEntry(filename=b"\xe5" + SHORT[1:], attr=Attr.ARCHIVE)) is True
    assert helpers.dirent_free(DirEntry(filename=SHORT, attr=Attr.ARCHIVE)) is False
    assert helpers.dirent_free(LfnEntry(seqno=0xE5)) is True
    assert helpers.dirent_free(LfnEntry(seqno=0x41)) is False


def test_dir_filename_short():
    entry = DirEntry(filename=SHORT, attr=Attr.ARCHIVE)
    assert helpers.dir_filename([entry], 0) == ("FOO.TXT", 0)


def test_dir_filename_short_lower_case():
    entry = DirEntry(filename=SHORT, attr=Attr.ARCHIVE, reserved0=0x18)
    assert helpers.dir_filename([entry], 0) == ("foo.txt", 0)


def test_dir_filename_long():
    lfn, _ = make_lfn("a_long_file_name.txt")
    entries = lfn + [DirEntry(filename=SHORT, attr=Attr.ARCHIVE)]
    assert helpers.dir_filename(entries, 0) == ("a_long_file_name.txt", len(lfn))


def test_dir_filename_errors():
    with pytest.raises(Fat32Error):
        helpers.dir_filename([DirEntry(filename=bytes(11), attr=Attr.ARCHIVE)], 0)
    lfn, _ = make_lfn("hello.txt")
    with pytest.raises(Fat32Error):
        helpers.dir_filename(lfn, 0)
    with pytest.raises(Fat32Error):
        helpers.dir_filename(lfn + [DirEntry(filename=SHORT, attr=Attr.VOLUME_LABEL)], 0)
    with pytest.raises(Fat32Error):
        helpers.dir_filename([DirEntry(filename=SHORT, attr=Attr.RO)], 0)


def test_dir_attr_str():
    assert helpers.dir_attr_str(Attr.DIR) == " DIR"
    assert helpers.dir_attr_str(Attr.RO | Attr.ARCHIVE) == "R/O ARCHIVE"
    assert helpers.dir_attr_str(Attr.LONG_FILE_NAME) == " LONG FILE NAME"
    with pytest.raises(Fat32Error):
        helpers.dir_attr_str(0x40)


def test_describe_partition():
    text = helpers.describe_partition("partition 1", PartitionEntry(part_type=0x0C))
    assert text.startswith("partition 1:\n")
    assert "\tpart type = c (FAT32 - LBA)\n" in text
    with pytest.raises(Fat32Error):
        helpers.describe_partition("p", PartitionEntry(part_type=0x83))


def test_describe_boot_sector(boot):
    text = helpers.describe_boot_sector("boot sector", boot)
    assert "\toem               = <MSWIN4.1>\n" in text
    assert "\tn sig             = aa55\n" in text
    with pytest.raises(Fat32Error):
        helpers.describe_boot_sector("b", dataclasses.replace(boot, nfats=1))


def test_describe_fsinfo():
    info = FsInfo(sig1=0x41615252, sig2=0x61417272, sig3=0xAA550000)
    text = helpers.describe_fsinfo("info struct", info)
    assert "\tsig1              = 41615252\n" in text
    assert "\tsig3              = aa550000\n" in text


def test_hex_dump():
    assert helpers.hex_dump("msg", b"\x01\xff") == "msg\n\n\t1, ff, \n"
    assert helpers.hex_dump("m", bytes(17)).count("\n\t") == 2