"""
Bloom Filter Monoid implementation

Enables composable membership testing across:
- Shards (union of partial filters built in parallel)
- Distributed workers (merge partial results)
"""
from typing import Iterable

from deltakit.core.monoid import Monoid, Semigroup
from deltakit.core.sketches.bloom_filter import DEFAULT_FALSE_POSITIVE_RATE, BloomFilter
from deltakit.errors import InvalidStateError


class BloomFilterMonoid(Semigroup[BloomFilter]):
    """
    Semigroup (not full Monoid) for Bloom Filters

    Note: Bloom filters don't have a parameter-free "zero" element, since an
    empty filter only merges with filters of the same bit and hash counts.
    Therefore, we use Semigroup instead.

    Example usage:
        semigroup = BloomFilterMonoid()

        bf_shard1 = BloomFilter(expected_size=100000)
        bf_shard1.add("user1")

        bf_shard2 = BloomFilter(expected_size=100000)
        bf_shard2.add("user2")

        bf_all = semigroup.plus(bf_shard1, bf_shard2)
        print("user2" in bf_all)  # True
    """

    def plus(self, a: BloomFilter, b: BloomFilter) -> BloomFilter:
        """
        Union of two Bloom filters (OR operation)

        Raises:
            IncompatibleOperandsError: If filters have incompatible parameters
        """
        return a.union(b)

    def sum_union(self, filters: Iterable[BloomFilter]) -> BloomFilter:
        """
        Union of multiple Bloom filters

        Args:
            filters: Bloom filters with equal parameters

        Returns:
            Combined filter (OR of all inputs)

        Raises:
            InvalidStateError: If filters is empty
        """
        result = self.sum_nonempty(filters)
        if result is None:
            raise InvalidStateError("Cannot union empty list of Bloom filters")
        return result


class BloomFilterUnionMonoid(Monoid[BloomFilter]):
    """
    Full Monoid for Bloom Filter union with fixed parameters

    This requires all filters to have the same expected size and false
    positive probability, allowing us to define a proper zero element.
    """

    def __init__(
        self,
        expected_size: int,
        false_positive_probability: float = DEFAULT_FALSE_POSITIVE_RATE,
    ):
        """
        Initialize with fixed Bloom filter parameters

        Args:
            expected_size: Fixed expected size for all filters
            false_positive_probability: Fixed false positive rate for all filters
        """
        self.expected_size = expected_size
        self.false_positive_probability = false_positive_probability

    def zero(self) -> BloomFilter:
        """
        Identity element: empty Bloom filter

        Returns:
            Empty Bloom filter with specified parameters
        """
        return BloomFilter(self.expected_size, self.false_positive_probability)

    def plus(self, a: BloomFilter, b: BloomFilter) -> BloomFilter:
        """Union operation"""
        return a.union(b)

    def from_values(self, values: Iterable) -> BloomFilter:
        """Filter holding every value"""
        bf = self.zero()
        bf.add_all(values)
        return bf
