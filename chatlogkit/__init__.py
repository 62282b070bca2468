"""Chat-log utilities: time parsing, .dat image decoding, decompression and file monitoring."""

__version__ = "0.1.0"