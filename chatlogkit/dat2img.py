"""Decoding of image files stored in the chat client's ``.dat`` format."""

from __future__ import annotations

import os
import re
import stat
import struct
from dataclasses import dataclass
from typing import Iterator

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

__all__ = [
    "ImageFormat",
    "DatDecodeError",
    "JPG",
    "PNG",
    "GIF",
    "TIFF",
    "BMP",
    "FORMATS",
    "V4_FORMAT1",
    "V4_FORMAT2",
    "V4_FORMATS",
    "V4_XOR_KEY",
    "JPG_TAIL",
    "dat_to_image",
    "dat_to_image_v4",
    "calculate_xor_key_v4",
    "scan_and_set_xor_key",
    "decrypt_aes_ecb",
]

_BLOCK_SIZE = 16
_V4_HEADER_LEN = 15
_UINT32_MASK = 0xFFFFFFFF


class DatDecodeError(ValueError):
    """Raised when ``.dat`` data cannot be decoded into an image."""


@dataclass(frozen=True)
class ImageFormat:
    """Leading bytes, file extension and optional AES key of a format."""

    header: bytes
    ext: str = ""
    aes_key: bytes = b""


JPG = ImageFormat(header=b"\xff\xd8\xff", ext="jpg")
PNG = ImageFormat(header=b"\x89\x50\x4e\x47", ext="png")
GIF = ImageFormat(header=b"\x47\x49\x46\x38", ext="gif")
TIFF = ImageFormat(header=b"\x49\x49\x2a\x00", ext="tiff")
BMP = ImageFormat(header=b"\x42\x4d", ext="bmp")
FORMATS = (JPG, PNG, GIF, TIFF, BMP)

V4_FORMAT1 = ImageFormat(header=b"\x07\x08\x56\x31", aes_key=b"cfcd208495d565ef")
V4_FORMAT2 = ImageFormat(header=b"\x07\x08\x56\x32", aes_key=b"0000000000000000")
V4_FORMATS = (V4_FORMAT1, V4_FORMAT2)

# XOR key for the tail of v4 files; updated by scan_and_set_xor_key.
V4_XOR_KEY = 0x37
JPG_TAIL = b"\xff\xd9"

_THUMBNAIL_RE = re.compile(r".*_t\.dat", re.DOTALL)


def _xor(data: bytes, key: int) -> bytes:
    return bytes(byte ^ key for byte in data)


def _is_v4(data: bytes) -> bool:
    return any(data[:4] == fmt.header for fmt in V4_FORMATS)


def dat_to_image(data: bytes) -> tuple[bytes, str]:
    """Decode ``.dat`` data and return the image bytes and their extension."""
    if len(data) < 4:
        raise DatDecodeError(f"data length is too short: {len(data)}")

    if len(data) >= 6:
        for fmt in V4_FORMATS:
            if data[:4] == fmt.header:
                return dat_to_image_v4(data, fmt.aes_key)

    for fmt in FORMATS:
        key = data[0] ^ fmt.header[0]
        if all(byte ^ head == key for byte, head in zip(data, fmt.header)):
            return _xor(data, key), fmt.ext

    raise DatDecodeError(f"unknown image type: {data[0]:x} {data[1]:x}")


def calculate_xor_key_v4(data: bytes) -> int:
    """Work out the XOR key of a v4 tail, assuming it ends like a JPEG."""
    if len(data) < 2:
        raise DatDecodeError("data too short to calculate XOR key")
    first, second = (byte ^ tail for byte, tail in zip(data[-2:], JPG_TAIL))
    if first != second:
        raise DatDecodeError(f"inconsistent XOR key, using first byte: 0x{first:x}")
    return first


def _iter_files(path: str) -> Iterator[str]:
    """Yield non-directory paths under ``path`` in lexical order."""
    info = os.lstat(path)
    if not stat.S_ISDIR(info.st_mode):
        yield path
        return
    for name in sorted(os.listdir(path)):
        yield from _iter_files(os.path.join(path, name))


def _thumbnail_key(path: str) -> int | None:
    try:
        with open(path, "rb") as handle:
            data = handle.read()
    except OSError:
        return None
    if len(data) < _V4_HEADER_LEN or not _is_v4(data):
        return None
    (xor_len,) = struct.unpack_from("<I", data, 10)
    file_data = data[_V4_HEADER_LEN:]
    if xor_len == 0 or xor_len > len(file_data):
        return None
    try:
        return calculate_xor_key_v4(file_data[len(file_data) - xor_len :])
    except DatDecodeError:
        return None


def scan_and_set_xor_key(directory: str) -> int:
    """Find the v4 XOR key from the first usable ``_t.dat`` thumbnail.

    The key is stored for later decoding and returned; if no thumbnail
    yields one, the current key is returned unchanged.  Raises
    ``OSError`` when the directory tree cannot be walked.
    """
    global V4_XOR_KEY
    for path in _iter_files(directory):
        if not _THUMBNAIL_RE.fullmatch(os.path.basename(path)):
            continue
        key = _thumbnail_key(path)
        if key is not None:
            V4_XOR_KEY = key
            break
    return V4_XOR_KEY


def dat_to_image_v4(data: bytes, aes_key: bytes) -> tuple[bytes, str]:
    """Decode a v4 ``.dat`` file: an AES-ECB head, a plain middle and an XOR tail."""
    if len(data) < _V4_HEADER_LEN:
        raise DatDecodeError(f"data length is too short for WeChat v4 format: {len(data)}")

    aes_len, xor_len = struct.unpack_from("<II", data, 6)
    file_data = data[_V4_HEADER_LEN:]

    aes_len0 = min((aes_len // _BLOCK_SIZE * _BLOCK_SIZE + _BLOCK_SIZE) & _UINT32_MASK, len(file_data))
    try:
        decrypted = decrypt_aes_ecb(file_data[:aes_len0], aes_key)
    except DatDecodeError as exc:
        raise DatDecodeError(f"AES decrypt error: {exc}") from exc

    if xor_len > len(file_data):
        raise DatDecodeError(f"XOR length {xor_len} exceeds data length {len(file_data)}")

    middle_end = len(file_data) - xor_len
    parts = [decrypted[:aes_len]]
    if aes_len0 < middle_end:
        parts.append(file_data[aes_len0:middle_end])
    if xor_len > 0 and middle_end < len(file_data):
        parts.append(_xor(file_data[middle_end:], V4_XOR_KEY))
    result = b"".join(parts)

    for fmt in FORMATS:
        if result.startswith(fmt.header):
            return result, fmt.ext
    raise DatDecodeError("unknown image type after decryption")


def decrypt_aes_ecb(data: bytes, key: bytes) -> bytes:
    """Decrypt AES-ECB data, stripping PKCS#7 padding when it is valid."""
    if not data:
        return b""
    if len(key) not in (16, 24, 32):
        raise DatDecodeError(f"invalid AES key size {len(key)}")
    if len(data) % _BLOCK_SIZE:
        raise DatDecodeError("data length is not a multiple of block size")

    decryptor = Cipher(algorithms.AES(key), modes.ECB()).decryptor()
    decrypted = decryptor.update(bytes(data)) + decryptor.finalize()

    padding = decrypted[-1]
    if 0 < padding <= _BLOCK_SIZE and decrypted[-padding:] == bytes([padding]) * padding:
        return decrypted[:-padding]
    return decrypted