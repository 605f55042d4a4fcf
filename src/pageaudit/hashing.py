# SPDX-License-Identifier: BSD-3-Clause

"""
Streaming digests for verifying linked content.

L{create_hash} returns an object with the C{hashlib} interface for any of
the supported algorithms. MD5 and SHA1 come straight from C{hashlib},
CRC32 is provided by L{Crc32Hash}.
"""

from __future__ import annotations

import hashlib
from typing import Protocol, Tuple
from urllib.parse import parse_qs, urlsplit

import zlib

QUERY_HASH_ALGORITHMS = ("sha1", "md5", "crc32")
"""Query parameters that can carry a digest, in order of preference."""


class HashT(Protocol):
    """The subset of the C{hashlib} hash interface that we rely on."""

    def update(self, data: bytes) -> None:
        ...

    def hexdigest(self) -> str:
        ...


class Crc32Hash:
    """
    CRC32 checksum with the same interface as the C{hashlib} digests.

    The digest is the 32-bit checksum in big endian byte order.
    """

    name = "crc32"
    digest_size = 4

    def __init__(self, data: bytes = b""):
        self._value = 0
        if data:
            self.update(data)

    def update(self, data: bytes) -> None:
        """Add C{data} to the checksum."""
        self._value = zlib.crc32(data, self._value)

    def digest(self) -> bytes:
        return self._value.to_bytes(self.digest_size, "big")

    def hexdigest(self) -> str:
        return f"{self._value:08x}"

    def copy(self) -> Crc32Hash:
        clone = Crc32Hash()
        clone._value = self._value  # pylint: disable=protected-access
        return clone


def create_hash(algorithm: str) -> HashT:
    """
    Create a digest object for the given algorithm name.

    @raise ValueError:
        If the algorithm is not supported.
    """

    if algorithm == "crc32":
        return Crc32Hash()
    if algorithm in ("md5", "sha1"):
        return hashlib.new(algorithm, usedforsecurity=False)
    raise ValueError(f'Unsupported hash algorithm "{algorithm}"')


def query_hash(url: str) -> Tuple[str, str] | None:
    """
    Look for an expected digest in the query of C{url}.

    @return: C{(algorithm, digest)}
        for the first non-empty parameter in L{QUERY_HASH_ALGORITHMS}
        order, or C{None} if the query does not contain a digest.
    """

    query = parse_qs(urlsplit(url).query)
    for algorithm in QUERY_HASH_ALGORITHMS:
        for value in query.get(algorithm, ()):
            if value:
                return algorithm, value
    return None
