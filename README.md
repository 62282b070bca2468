# chatlogkit

Small, self-contained utilities for tools that read and export chat logs:
parsing loose time expressions, decoding `.dat` image files, decompressing
LZ4 and Zstandard data, and watching directories for file changes.

## Installation

```
pip install chatlogkit
```

## Modules

### `chatlogkit.timeparse`

- `time_of(text)` returns a timezone-aware `datetime`.
- `time_of_with_granularity(text)` returns `(datetime, TimeGranularity)`.
  `TimeGranularity` is an `IntEnum` with these members: `UNKNOWN`, `SECOND`,
  `MINUTE`, `HOUR`, `DAY`, `MONTH`, `QUARTER`, `YEAR`.
- `is_valid_date(year, month, day)` checks whether a day exists in the given
  month. It takes leap years into account.

The parsers accept these inputs:

- Unix seconds, such as `1577836800`
- Dates: `20200101` and `2020-01-01`
- Dates with a clock time: `2020-01-01/12:34`
- Compact date-times: `200601021504` and `20200101120000`
- RFC 3339 timestamps, with or without seconds
- Years: `2020`
- Months: `202001` and `2020-01`
- Quarters: `2020Q1`
- Relative times: `5h-ago`, `3d-ago`, `1w-ago`, `1m-ago`, `1y-ago`, and
  duration forms such as `90m-ago`
- Words: `now`, `today`, `yesterday`, `this-week`, `last-week`, `this-month`,
  `last-month`, `this-year`, `last-year` and `all`

Years must lie between 1970 and 9999. Input that cannot be parsed raises
`ValueError`.

### `chatlogkit.timerange`

`time_range_of(text)` returns a `(start, end)` pair of `datetime` values. It
accepts the following forms:

- `all`, which covers 1970-01-01 to 9999-12-31 in UTC.
- `last-7d`, `last-4w`, `last-3m` and `last-1y`.
- Two points joined by `~`, `,` or ` to `. If the points are given in reverse
  order, they are swapped.
- A single point. It is widened to cover its whole day, month, quarter or
  year.

Invalid input raises `ValueError`.

`adjust_start_time(moment, granularity)` and `adjust_end_time(moment, granularity)`
move a time to the start or end of the period it names.

`perfect_time_format(start, end)` returns the shortest `strftime` format that
still tells times in the range apart. If `end` falls exactly at midnight, it
counts as the end of the previous day.

### `chatlogkit.strutil`

- `is_normal_string(data)`: true if the bytes are valid UTF-8 and every
  character is printable.
- `is_numeric(text)`: true if the string is non-empty and holds only decimal
  digits.
- `str_to_list(text, sep)`: splits the string, trims each item, and drops
  blanks and repeats. Order is kept.
- `must_any_to_int(value)`: converts the printed form of a value to an int.
  Returns `0` if it is not an integer.
- `split_int64_to_two_int32(value)`: returns `(low 32 bits, value >> 32)`.

### `chatlogkit.compress`

- `lz4_decompress(data)` decompresses a raw LZ4 block. The output may be at
  most four times the input size.
- `zstd_decompress(data)` decompresses one or more concatenated Zstandard
  frames.

Both raise `ValueError` on bad input.

### `chatlogkit.dat2img`

- `dat_to_image(data)` returns `(image_bytes, extension)`. It decodes two
  kinds of file:
  - single-byte-XOR files, detected as JPG, PNG, GIF, TIFF or BMP;
  - v4 files, which have an AES-ECB head, a plain middle and an XOR tail.
- `dat_to_image_v4(data, aes_key)` decodes a v4 file directly.
- `decrypt_aes_ecb(data, key)` decrypts AES-ECB data and strips valid PKCS#7
  padding.
- `calculate_xor_key_v4(data)` derives the XOR key, assuming the data ends
  with the JPEG end marker.
- `scan_and_set_xor_key(directory)` walks a directory tree. It takes the key
  from the first usable `_t.dat` thumbnail and stores it in
  `dat2img.V4_XOR_KEY` for later decoding.

Decoding errors raise `DatDecodeError`, which is a subclass of `ValueError`.
The known formats are available as `ImageFormat` constants: `JPG`, `PNG`,
`GIF`, `TIFF`, `BMP`, `V4_FORMAT1` and `V4_FORMAT2`.

### `chatlogkit.appver`

`load_app_info(file_path, platform=None)` returns an `AppInfo` dataclass.

- On macOS (`"darwin"`), it reads `CFBundleShortVersionString` and
  `NSHumanReadableCopyright` from the bundle's `Info.plist`, found two levels
  above the executable.
- On other platforms, only `file_path` is filled in.

### `chatlogkit.filegroup` and `chatlogkit.filemonitor`

A `FileGroup(group_id, root_dir, pattern, blacklist)` describes files under a
root directory whose base name matches a regular expression. Any file whose
relative path contains a blacklisted string is excluded.

- `match(path)` tests whether a path belongs to the group.
- `list_files()` scans the root and returns the matching paths.
- `list_matching_directories()` returns the directories that hold matching
  files.
- `add_callback` and `remove_callback` register and unregister callbacks.
- `handle_event(FileEvent)` runs each callback in its own thread and returns
  the threads. A `FileEvent` has a `name` and an `EventOp` flag.

`FileMonitor` uses watchdog to watch the directories of its groups and passes
events on to them. Its methods are:

- `add_group`, `create_group`, `remove_group`, `get_group`, `get_groups`
- `set_blacklist`
- `start`, `stop`, `is_running`
- `refresh_watches`

Misuse raises `FileMonitorError`. Examples are adding a duplicate group ID or
stopping a monitor that is not running.

### `chatlogkit.version`

`get_more(mod)` returns a one-line version string. When `mod` is true, it
returns indented build details instead.

## Example

```python
from chatlogkit.timerange import time_range_of
from chatlogkit.dat2img import dat_to_image

start, end = time_range_of("2020-01-01~2020-01-31")

with open("photo.dat", "rb") as fh:
    image, ext = dat_to_image(fh.read())
```

## What it does not do

This package is a set of library functions only. It does not provide:

- a command-line program;
- configuration-file loading or saving;
- helpers for creating working directories or measuring their size;
- cached temporary copies of files.

On Windows, `load_app_info` does not read version resources from executables.

## Running the tests

```
pip install -e .[test]
pytest
```