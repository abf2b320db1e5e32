"""A read-only view of the FAT32 partition in a disk image."""

from __future__ import annotations

import argparse
import struct
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from pifat.helpers import (
    check_boot_sector,
    check_fsinfo,
    check_mbr,
    check_partition,
    describe_boot_sector,
    describe_fsinfo,
    describe_partition,
    dir_filename,
    dirent_free,
    fat_entry_type,
    is_attr,
    partition_is_empty,
)
from pifat.layout import (
    SECTOR_SIZE,
    Attr,
    BootSector,
    ClusterType,
    Fat32Error,
    FsInfo,
    MasterBootRecord,
    PartitionEntry,
    parse_directory,
)

_FAT_MASK = 0x0FFFFFFF
_FIRST_DATA_CLUSTER = 2


@dataclass(frozen=True)
class DirectoryEntry:
    """A file or directory found in a FAT32 directory."""

    name: str
    cluster_id: int
    is_dir: bool
    nbytes: int


def count_entries(entries: Sequence) -> int:
    """Number of allocated short-name entries among raw directory entries."""
    return sum(
        1
        for entry in entries
        if not dirent_free(entry) and entry.attr != Attr.LONG_FILE_NAME
    )


class Fat32Volume:
    """The FAT32 file system held in the first partition of a disk image."""

    def __init__(self, image: bytes):
        self._image = bytes(image)

        mbr = check_mbr(MasterBootRecord.from_bytes(self.read_sectors(0, 1)))
        first, *rest = mbr.partition_tables
        if partition_is_empty(first):
            raise Fat32Error("partition 1 is empty")
        for number, table in enumerate(rest, start=2):
            if not partition_is_empty(table):
                raise Fat32Error(f"partition {number} is not empty")
        self.mbr = mbr
        self.partition = check_partition(PartitionEntry.from_bytes(first))

        lba_start = self.partition.lba_start
        self.boot_sector = check_boot_sector(
            BootSector.from_bytes(self.read_sectors(lba_start, 1))
        )
        self.fsinfo = check_fsinfo(FsInfo.from_bytes(self.read_sectors(lba_start + 1, 1)))

        boot = self.boot_sector
        self.fat_begin_lba = lba_start + boot.reserved_area_nsec
        self.cluster_begin_lba = self.fat_begin_lba + boot.nfats * boot.nsec_per_fat
        self.sectors_per_cluster = boot.sec_per_cluster
        self.root_dir_first_cluster = boot.first_cluster
        if self.sectors_per_cluster == 0:
            raise Fat32Error("sec_per_cluster must not be 0")

        copies = [
            self.read_sectors(self.fat_begin_lba + i * boot.nsec_per_fat, boot.nsec_per_fat)
            for i in range(boot.nfats)
        ]
        if any(copy != copies[0] for copy in copies[1:]):
            raise Fat32Error("FAT copies differ")
        raw = copies[0]
        self.fat = struct.unpack(f"<{len(raw) // 4}I", raw)

    @classmethod
    def open(cls, path) -> "Fat32Volume":
        """Load a disk image from ``path``."""
        return cls(Path(path).read_bytes())

    def read_sectors(self, lba: int, nsec: int) -> bytes:
        """Return ``nsec`` sectors starting at ``lba``."""
        if lba < 0 or nsec < 0:
            raise Fat32Error(f"bad sector range: lba={lba}, nsec={nsec}")
        start = lba * SECTOR_SIZE
        end = start + nsec * SECTOR_SIZE
        if end > len(self._image):
            raise Fat32Error(
                f"sectors {lba}..{lba + nsec - 1} lie beyond the end of the image"
            )
        return self._image[start:end]

    def cluster_to_lba(self, cluster: int) -> int:
        """First sector of a data cluster."""
        if cluster < _FIRST_DATA_CLUSTER:
            raise Fat32Error(f"cluster {cluster} is not a data cluster")
        return self.cluster_begin_lba + (cluster - _FIRST_DATA_CLUSTER) * self.sectors_per_cluster

    def cluster_chain(self, cluster: int) -> list:
        """The clusters of the chain that starts at ``cluster``, in order."""
        chain = []
        seen = set()
        while True:
            if not _FIRST_DATA_CLUSTER <= cluster < len(self.fat):
                raise Fat32Error(f"cluster {cluster} is outside the FAT")
            if cluster in seen:
                raise Fat32Error(f"cluster chain loops at {cluster}")
            seen.add(cluster)
            chain.append(cluster)
            value = self.fat[cluster]
            kind = fat_entry_type(value)
            if kind is ClusterType.LAST:
                return chain
            if kind is not ClusterType.USED:
                raise Fat32Error(f"cluster {cluster} in a chain is marked {kind.name}")
            cluster = value & _FAT_MASK

    def _read_chain(self, cluster: int) -> bytes:
        return b"".join(
            self.read_sectors(self.cluster_to_lba(c), self.sectors_per_cluster)
            for c in self.cluster_chain(cluster)
        )

    def read_directory(self, cluster: int) -> list:
        """The entries of the directory whose data starts at ``cluster``."""
        entries = parse_directory(self._read_chain(cluster))
        result = []
        index = 0
        while index < len(entries):
            if dirent_free(entries[index]):
                index += 1
                continue
            name, short_index = dir_filename(entries, index)
            short = entries[short_index]
            result.append(
                DirectoryEntry(
                    name=name,
                    cluster_id=short.first_cluster(),
                    is_dir=is_attr(short.attr, Attr.DIR),
                    nbytes=short.file_nbytes,
                )
            )
            index = short_index + 1
        return result

    def root_directory(self) -> list:
        """The entries of the root directory."""
        return self.read_directory(self.root_dir_first_cluster)

    def read_file(self, entry: DirectoryEntry) -> bytes:
        """The whole contents of a file."""
        if entry.nbytes == 0:
            return b""
        data = self._read_chain(entry.cluster_id)
        if len(data) < entry.nbytes:
            raise Fat32Error(
                f"{entry.name}: chain holds {len(data)} bytes, file has {entry.nbytes}"
            )
        return data[: entry.nbytes]

    def lookup(self, name: str) -> Optional[DirectoryEntry]:
        """Find ``name`` in the root directory, or None."""
        for entry in self.root_directory():
            if entry.name == name:
                return entry
        return None


def _entry_line(entry: DirectoryEntry) -> str:
    kind = "dir" if entry.is_dir else "file"
    return (
        f"\t{entry.name}\t\t->\tcluster id={entry.cluster_id}, "
        f"type={kind}, nbytes={entry.nbytes}\n"
    )


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="pifat",
        description="Describe a FAT32 disk image and print files from its root directory.",
    )
    parser.add_argument("image", help="path of the disk image")
    parser.add_argument("names", nargs="*", help="files in the root directory to print")
    args = parser.parse_args(argv)

    out = sys.stdout
    try:
        volume = Fat32Volume.open(args.image)
        out.write(describe_partition("partition 1", volume.partition))
        out.write(describe_boot_sector("boot sector", volume.boot_sector))
        out.write(describe_fsinfo("info struct", volume.fsinfo))
        for entry in volume.root_directory():
            out.write(_entry_line(entry))
        for name in args.names:
            entry = volume.lookup(name)
            if entry is None:
                raise Fat32Error(f"not found: {name}")
            out.write("FOUND: " + _entry_line(entry))
            out.write(f"{name}:\n")
            out.write("-" * 57 + "\n")
            out.write(volume.read_file(entry).decode("latin-1"))
            out.write("-" * 57 + "\n")
    except (Fat32Error, OSError) as exc:
        print(f"pifat: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())