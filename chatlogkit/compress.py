"""Decompression of LZ4 blocks and Zstandard frames."""

from __future__ import annotations

import lz4.block
import zstandard

__all__ = ["lz4_decompress", "zstd_decompress"]

_LZ4_RATIO = 4


def lz4_decompress(data: bytes) -> bytes:
    """Decompress a raw LZ4 block whose output is at most four times its size.

    Raises ``ValueError`` when the block is malformed or expands further.
    """
    try:
        return lz4.block.decompress(data, uncompressed_size=len(data) * _LZ4_RATIO)
    except lz4.block.LZ4BlockError as exc:
        raise ValueError(f"lz4 decompression failed: {exc}") from exc


def zstd_decompress(data: bytes) -> bytes:
    """Decompress one or more concatenated Zstandard frames.

    Raises ``ValueError`` on malformed or truncated input.
    """
    decompressor = zstandard.ZstdDecompressor()
    chunks = []
    rest = bytes(data)
    while rest:
        stream = decompressor.decompressobj()
        try:
            chunks.append(stream.decompress(rest))
        except zstandard.ZstdError as exc:
            raise ValueError(f"zstd decompression failed: {exc}") from exc
        if not stream.eof:
            raise ValueError("zstd decompression failed: truncated frame")
        rest = stream.unused_data
    return b"".join(chunks)