"""
Reproducible hash function family for Bloom filters

Every filter, in every process, must derive the same bit positions from the
same value, otherwise serialized filters could not be merged or queried
elsewhere. Two pieces make that possible:

- hash_code(): a stable 32-bit hash of a value (Python's built-in hash()
  is salted per process for str and bytes, so it can't be used)
- HashFamily: an ordered family of integer hash functions
  h_i(hc) = hc + PRIMES[i] * murmur3(hc), in 32-bit two's complement
"""
import struct
from typing import Callable, List, Sequence

import mmh3

from deltakit.errors import HashIndexError, MissingValueError

HashFunction = Callable[[int], int]

# The first 20 primes. Since k = ceil(-ln(p) / ln(2)), 20 functions cover a
# false positive rate down to 1 in 1,048,576.
PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71)

# The 1,000th prime
SEED = 7919

_INT32 = struct.Struct("<i")
_LENGTH = struct.Struct("<I")


def to_int32(value: int) -> int:
    """Wrap an arbitrary integer to a signed 32-bit integer"""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def murmur3(hash_code: int, seed: int = SEED) -> int:
    """
    MurmurHash3 (x86, 32-bit) of a single 32-bit integer

    The integer is hashed as its 4-byte little-endian encoding, which is
    exactly one block followed by the fmix32 finalizer.

    Args:
        hash_code: Input integer (wrapped to 32 bits)
        seed: Hash seed

    Returns:
        Signed 32-bit hash
    """
    return mmh3.hash(_INT32.pack(to_int32(hash_code)), seed=seed, signed=True)


def canonical_bytes(value) -> bytes:
    """
    Encode a value as bytes for stable hashing

    Every encoding starts with a type tag. Values that compare equal in
    Python encode identically, so 1, 1.0 and True share an encoding just as
    they share a dict slot, while "i:1" and 1 do not.

    Args:
        value: str, bytes-like, bool, int, float, or a tuple of those

    Returns:
        Byte encoding

    Raises:
        MissingValueError: If value is None
        TypeError: If value has no stable encoding
    """
    if value is None:
        raise MissingValueError("value must not be None")
    if isinstance(value, str):
        return b"s:" + value.encode("utf-8")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return b"b:" + bytes(value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        return b"i:" + str(int(value)).encode("ascii")
    if isinstance(value, float):
        return b"f:" + value.hex().encode("ascii")
    if isinstance(value, tuple):
        parts = [b"t:"]
        for element in value:
            encoded = canonical_bytes(element)
            parts.append(_LENGTH.pack(len(encoded)))
            parts.append(encoded)
        return b"".join(parts)
    raise TypeError(f"no stable hash encoding for {type(value).__name__}")


def hash_code(value) -> int:
    """
    Stable signed 32-bit hash code of a value

    Args:
        value: Value to hash (see canonical_bytes for supported types)

    Returns:
        Signed 32-bit hash, identical across processes
    """
    return mmh3.hash(canonical_bytes(value), seed=0, signed=True)


class HashFamily:
    """
    Fixed, ordered family of integer hash functions

    It's important that all Bloom filters use the same functions in the same
    order, so the family only depends on its primes and seed. The defaults
    are the globally agreed family.

    Example:
        family = HashFamily()
        h0 = family.generate(0)
        h0(hash_code("user1"))  # same result in every process
    """

    def __init__(self, primes: Sequence[int] = PRIMES, seed: int = SEED):
        self.primes = tuple(primes)
        self.seed = seed

    def __len__(self) -> int:
        return len(self.primes)

    def generate(self, index: int) -> HashFunction:
        """
        Generate the index-th hash function

        Args:
            index: Position in the family, starting from 0

        Returns:
            Function mapping a 32-bit hash code to another 32-bit integer

        Raises:
            HashIndexError: If index is outside [0, len(family))
        """
        if not 0 <= index < len(self.primes):
            raise HashIndexError(f"index must be in the range [0, {len(self.primes)})")

        prime = self.primes[index]
        seed = self.seed

        def hash_function(hc: int) -> int:
            return to_int32(hc + prime * murmur3(hc, seed))

        return hash_function

    def take(self, k: int) -> List[HashFunction]:
        """The first k hash functions of the family"""
        return [self.generate(index) for index in range(k)]


DEFAULT_FAMILY = HashFamily()


def generate_hash_function(index: int) -> HashFunction:
    """Generate the index-th function of the default family"""
    return DEFAULT_FAMILY.generate(index)
