"""
Bloom Filter implementation for set membership queries
Fast probabilistic "has this been seen before?" checks

The bit count and hash count are pure functions of (expected_size,
false_positive_probability), so any two filters built with the same
parameters can be merged, whichever process built them.
"""
import math
from typing import Iterable, Optional

from deltakit.core.hashing import DEFAULT_FAMILY, hash_code
from deltakit.errors import (
    CapacityError,
    IncompatibleOperandsError,
    InvalidParameterError,
    MissingValueError,
)

DEFAULT_FALSE_POSITIVE_RATE = 1.0 / 1_000.0

MIN_FALSE_POSITIVE_RATE = 1.0 / 1_000_000.0

LN_OF_2 = math.log(2)
LN_OF_2_SQUARED = LN_OF_2 * LN_OF_2


def _check_false_positive_probability(p: float) -> None:
    if not 0.0 < p < 1.0:
        raise InvalidParameterError("false_positive_probability must be in the range (0, 1)")
    if p < MIN_FALSE_POSITIVE_RATE:
        raise InvalidParameterError(
            f"false_positive_probability must be at least {MIN_FALSE_POSITIVE_RATE}"
        )


def optimal_hash_functions(p: float) -> int:
    """
    Calculate optimal number of hash functions

    k = ceil(-ln(p) / ln(2))
    """
    _check_false_positive_probability(p)
    return math.ceil(-math.log(p) / LN_OF_2)


def optimal_bits(n: int, p: float) -> int:
    """
    Calculate optimal bit array size

    m = ceil(-n*ln(p) / (ln(2)^2))
    """
    return math.ceil(-n * math.log(p) / LN_OF_2_SQUARED)


class BloomFilter:
    """
    Bloom Filter probabilistic data structure for membership testing.

    Space: m = -n*ln(p)/ln(2)^2 bits where n=expected_size, p=false positive rate
    False Positive Rate: p once n items have been added
    False Negative Rate: 0 (never happens)

    Bit i lives in byte i // 8 under mask 1 << (i % 8), so to_bytes() is
    interchangeable with a little-endian bit set.

    Not synchronized: give each worker its own filter and merge afterwards.
    """

    def __init__(
        self,
        expected_size: int,
        false_positive_probability: float = DEFAULT_FALSE_POSITIVE_RATE,
        bits: Optional[bytes] = None,
    ):
        """
        Initialize Bloom Filter

        Args:
            expected_size: Expected number of items
            false_positive_probability: Desired false positive rate (0.001 = 0.1%)
            bits: Optional bit data from to_bytes() of a filter with the same
                  parameters (trailing zero bytes may be omitted)

        Raises:
            InvalidParameterError: If expected_size or the rate is out of range
            CapacityError: If bits does not fit in the derived bit count
        """
        if expected_size is None or false_positive_probability is None:
            raise MissingValueError("expected_size and false_positive_probability are required")
        if expected_size <= 0:
            raise InvalidParameterError("expected_size must be positive")
        _check_false_positive_probability(false_positive_probability)

        self.expected_size = expected_size
        self.false_positive_probability = false_positive_probability

        # Calculate optimal bit array size and hash function count
        self.num_bits = optimal_bits(expected_size, false_positive_probability)
        self.num_hash_functions = optimal_hash_functions(false_positive_probability)
        self.hash_functions = DEFAULT_FAMILY.take(self.num_hash_functions)

        # Initialize bit array
        self.bit_array = bytearray(math.ceil(self.num_bits / 8))
        if bits is not None:
            self._load_bits(bits)

        self._approximate_size: Optional[int] = None

    def _load_bits(self, bits: bytes) -> None:
        if len(bits) > len(self.bit_array):
            raise CapacityError(f"bits must have maximum length {len(self.bit_array)}")
        tail = self.num_bits % 8
        if tail and len(bits) == len(self.bit_array) and bits[-1] >> tail:
            raise CapacityError(f"bits has bits set beyond index {self.num_bits - 1}")
        self.bit_array[:len(bits)] = bits

    def _get_positions(self, value) -> list:
        """
        Get bit positions for a value, one per hash function

        Args:
            value: Value to hash

        Returns:
            List of bit positions
        """
        hc = hash_code(value)
        return [abs(h(hc)) % self.num_bits for h in self.hash_functions]

    def add(self, value) -> None:
        """
        Add a value to the Bloom filter

        Args:
            value: Value to add (str, bytes, number or tuple of those)
        """
        for position in self._get_positions(value):
            self.bit_array[position >> 3] |= 1 << (position & 7)
        self._approximate_size = None

    def add_all(self, values: Iterable) -> None:
        """Add every value in an iterable"""
        for value in values:
            self.add(value)

    def might_contain(self, value) -> bool:
        """
        Check if value might be in the set

        Args:
            value: Value to check

        Returns:
            True: Value might be in set (or false positive)
            False: Value definitely NOT in set
        """
        for position in self._get_positions(value):
            if not self.bit_array[position >> 3] & (1 << (position & 7)):
                return False
        return True

    def __contains__(self, value) -> bool:
        """Support 'in' operator"""
        return self.might_contain(value)

    def is_compatible(self, other: "BloomFilter") -> bool:
        """True if other has the same bit count and hash count"""
        return (
            self.num_bits == other.num_bits
            and self.num_hash_functions == other.num_hash_functions
        )

    def _check_compatible(self, other: "BloomFilter") -> None:
        if not isinstance(other, BloomFilter):
            raise IncompatibleOperandsError(f"cannot merge BloomFilter with {type(other).__name__}")
        if self.num_bits != other.num_bits:
            raise IncompatibleOperandsError("Bloom filters must have the same number of bits")
        if self.num_hash_functions != other.num_hash_functions:
            raise IncompatibleOperandsError(
                "Bloom filters must have the same number of hash functions"
            )

    def merge(self, other: "BloomFilter") -> None:
        """
        Add all the values of another filter to this one (OR, in place)

        Args:
            other: Bloom filter with the same bit and hash counts

        Raises:
            IncompatibleOperandsError: If the filters have different shapes
        """
        self._check_compatible(other)
        for i, byte in enumerate(other.bit_array):
            self.bit_array[i] |= byte
        self._approximate_size = None

    def union(self, other: "BloomFilter") -> "BloomFilter":
        """
        Union of two Bloom filters (OR operation)

        Args:
            other: Another Bloom filter

        Returns:
            New Bloom filter containing union
        """
        self._check_compatible(other)
        result = self.copy()
        result.merge(other)
        return result

    def copy(self) -> "BloomFilter":
        """Independent copy of this filter"""
        return BloomFilter(self.expected_size, self.false_positive_probability, bytes(self.bit_array))

    def is_empty(self) -> bool:
        """True if no bits are set. Cheaper than approximate_size() == 0"""
        return not any(self.bit_array)

    def set_bits(self) -> int:
        """Number of bits set to 1"""
        return sum(bin(byte).count("1") for byte in self.bit_array)

    def approximate_size(self) -> int:
        """
        Estimate number of items added

        n ≈ -m/k * ln(1 - X/m)
        where X is number of set bits. Cached until the next add or merge.
        """
        if self._approximate_size is None:
            set_bits = self.set_bits()
            if set_bits >= self.num_bits:
                self._approximate_size = self.num_bits
            else:
                self._approximate_size = math.ceil(
                    -self.num_bits / self.num_hash_functions
                    * math.log(1.0 - set_bits / self.num_bits)
                )
        return self._approximate_size

    def to_bytes(self) -> bytes:
        """Serialize bit array to bytes for storage"""
        return bytes(self.bit_array)

    @classmethod
    def from_bytes(
        cls, data: bytes, expected_size: int, false_positive_probability: float
    ) -> "BloomFilter":
        """Deserialize from bytes"""
        return cls(expected_size, false_positive_probability, data)

    @classmethod
    def fit(
        cls,
        values: Iterable,
        expected_size: Optional[int] = None,
        false_positive_probability: float = DEFAULT_FALSE_POSITIVE_RATE,
    ) -> "BloomFilter":
        """
        Build a filter holding every value

        Args:
            values: Values to add. Any iterable, generators included; when
                    expected_size is omitted it is collected and counted first.
            expected_size: Expected number of values (default: count them)
            false_positive_probability: Desired false positive rate

        Returns:
            Filled Bloom filter
        """
        if expected_size is None:
            values = list(values)
            expected_size = len(values)
        bf = cls(expected_size, false_positive_probability)
        bf.add_all(values)
        return bf

    def __len__(self) -> int:
        """Return estimated item count"""
        return self.approximate_size()

    def __eq__(self, other) -> bool:
        if not isinstance(other, BloomFilter):
            return NotImplemented
        return (
            self.expected_size == other.expected_size
            and self.false_positive_probability == other.false_positive_probability
            and self.bit_array == other.bit_array
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"BloomFilter(expected_size={self.expected_size}, "
            f"false_positive_probability={self.false_positive_probability}, "
            f"num_bits={self.num_bits}, num_hash_functions={self.num_hash_functions})"
        )
