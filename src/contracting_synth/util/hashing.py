"""Deterministic hashing utilities for stable data generation."""

import hashlib
import struct
from pathlib import Path


def stable_hash_str(s: str) -> str:
    """Compute a stable SHA-256 hash of a string, returning hex string.

    Uses UTF-8 encoding for consistency across platforms.
    """
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def seed_from_str(s: str) -> int:
    """Derive a 32-bit unsigned integer seed from a string.

    Uses the first 4 bytes of the SHA-256 hash interpreted as
    a big-endian unsigned integer.
    """
    hash_bytes = hashlib.sha256(s.encode("utf-8")).digest()
    return struct.unpack(">I", hash_bytes[:4])[0]


def file_sha256(file_path: Path) -> str:
    """Calculate the SHA-256 hash of a file, reading in 4K chunks."""
    sha256_hash = hashlib.sha256()
    with open(file_path, "rb") as f:
        for byte_block in iter(lambda: f.read(4096), b""):
            sha256_hash.update(byte_block)
    return sha256_hash.hexdigest()
