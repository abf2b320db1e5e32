# pifat

`pifat` reads the FAT32 file system held in a disk image. It also holds the
smaller pieces that sit around such a reader: parsers and checks for the
on-disk records, a UTF-8 encoder, a compact printf, a GPIO register model,
a tracing memory for comparing runs, and a serial console echo tool.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `pifat.fs`: `Fat32Volume` takes the bytes of a disk image, and
  `Fat32Volume.open(path)` loads one from a file. The master boot record must
  carry the `0xAA55` signature. Partition 1 must be a FAT32 partition (type
  `0x0b` or `0x0c`), and partitions 2 to 4 must be empty. The volume checks the
  boot sector and the FSInfo sector, and it requires every copy of the FAT to
  be identical. Through it you can:
  - read raw sectors with `read_sectors`;
  - map clusters to sectors with `cluster_to_lba`;
  - follow chains with `cluster_chain`, which rejects loops and free, bad or
    reserved links;
  - list a directory with `read_directory(cluster)` or `root_directory()`;
  - read a whole file with `read_file(entry)`;
  - find a name in the root directory with `lookup(name)`. It returns `None`
    when the name is absent.

  Directory entries come back as `DirectoryEntry(name, cluster_id, is_dir,
  nbytes)`. A long name is used when one is present. Otherwise the short name
  is written as base `.` extension with the padding spaces removed from the
  base, so a file stored as `CONFIG  TXT` appears as `CONFIG.TXT`. The
  function `count_entries` counts the allocated short-name entries in a list
  of raw entries.
- `pifat.layout`: frozen dataclasses for the on-disk records, each built with
  `from_bytes`. They are `PartitionEntry`, `MasterBootRecord`, `FsInfo`,
  `BootSector`, `DirEntry` and `LfnEntry`. All of them have `to_bytes` as well.
  `parse_directory` splits raw directory data into `DirEntry` and `LfnEntry`
  values. The module also defines the `Attr` flags and the `ClusterType` enum.
  Malformed data raises `Fat32Error`, which is a `ValueError`.
- `pifat.helpers`: the following helpers, which raise `Fat32Error` when a
  check fails:
  - `check_mbr`, `check_partition`, `check_boot_sector` and `check_fsinfo`
    validate the records;
  - `partition_type_name` names a partition type and `partition_is_empty`
    tests whether a partition slot is empty;
  - `fat_entry_type` and `fat_entry_type_name` classify FAT entries;
  - `lfn_checksum`, `lfn_name`, `check_lfn`, `lfn_is_first`, `lfn_is_last`
    and `lfn_is_deleted` handle long file names;
  - `dirent_free`, `dir_filename`, `dir_attr_str` and `is_attr` handle
    directory entries;
  - `describe_partition`, `describe_boot_sector`, `describe_fsinfo` and
    `hex_dump` return text descriptions.
- `pifat.utf8`: `to_utf8` encodes a single code point and `to_cp` decodes
  one. `codepoint_len` and `utf8_len` give sequence lengths.
- `pifat.printf`: `format_string`, `snprintf(size, fmt, ...)` and
  `printf(fmt, ..., file=None)`. They handle the conversions
  `%d %u %x %p %b %c %s %f` and `%%`, with field widths below 32.
  `snprintf` returns at most `size - 1` characters. `printf` writes at most
  1023 characters. Format errors raise `PrintfError`.
- `pifat.gpio`: `Gpio` sets and reads pin functions (`GpioFunction`). It
  also reads and drives pin levels, enables edge detection, checks events
  with or without clearing them, and sets pull-ups and pull-downs. It works
  on any object that has `get32` and `put32`, such as `DictMemory`, which
  records every store in its `writes` list. Bad pins or functions raise
  `GpioError`. `function_register`, `function_offset` and `pin_valid` give
  the register layout.
- `pifat.crosscheck`: `TracingMemory` logs every 32-bit read and write. A
  read of an address that was never written returns a seeded random value.
  `run_fn_iu`, `run_fn_vv_once`, `pin_values` and `broken_example` drive
  code against it so that the logs of two runs can be compared.
- `pifat.picat`: `find_tty`, `open_tty`, `configure_8n1` and `echo`, plus
  `ExitDetector`, which watches the output for `DONE!!!`. Failures to find,
  open or configure the device raise `TtyError`.

## Using the library

```python
from pifat.fs import Fat32Volume

volume = Fat32Volume.open("sdcard.img")
for entry in volume.root_directory():
    print(entry)

config = volume.lookup("CONFIG.TXT")
if config is not None:
    print(volume.read_file(config).decode("latin-1"))
```

## Commands

```
pifat sdcard.img [NAME ...]
```

This describes partition 1, the boot sector and the FSInfo sector of the
image and lists the root directory. It then prints each named file from the
root directory. It exits with status 1 and a message if the image is
malformed or a name is not found.

```
pifat-crosscheck [--seed N]
```

This runs the example pin routine under `TracingMemory`, first once and then
for every pin from 0 to 63 plus a few random values. It prints every read and
write, so the output of two runs can be diffed.

```
pi-cat [PORT] [--dev-dir DIR]
```

This opens `PORT`. Without `PORT` it opens the only `ttyUSB*` or
`cu.SLAB_USB*` device in `DIR` (default `/dev`). It sets the device to raw
8n1 at 115200 baud and echoes what the board prints to standard error. It
stops when the board prints `DONE!!!`, when a read fails or when the device
disappears. It needs a POSIX terminal interface.

## What it does not do

- It only reads. Nothing is ever written to an image.
- It reads image files, not SD cards or other block devices directly, and it
  only looks at the first partition.
- `lookup` searches the root directory only. There is no path resolution,
  although `read_directory` lists any directory when given its first cluster.
- `Gpio` does not touch real hardware registers. It only reads and writes the
  memory object it is given.