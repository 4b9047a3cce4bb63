"""
Codec for backup files: protobuf encoding wrapped in gzip.

Invariants:
    - Encoding is lossless for the snapshot model
    - Corrupt input always raises CorruptBackupError
"""

from .serializer import (
    DEFAULT_COMPRESSION_LEVEL,
    compress,
    decode,
    decompress,
    dump_bytes,
    encode,
    load_bytes,
)

__all__ = [
    "DEFAULT_COMPRESSION_LEVEL",
    "encode",
    "decode",
    "compress",
    "decompress",
    "dump_bytes",
    "load_bytes",
]
