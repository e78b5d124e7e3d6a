"""
Tests for the Bloom filter
"""
import pytest

from deltakit.core.sketches.bloom_filter import (
    DEFAULT_FALSE_POSITIVE_RATE,
    MIN_FALSE_POSITIVE_RATE,
    BloomFilter,
    optimal_bits,
    optimal_hash_functions,
)
from deltakit.errors import (
    CapacityError,
    IncompatibleOperandsError,
    InvalidParameterError,
    MissingValueError,
)


class TestSizing:
    """Test bit and hash count formulas"""

    def test_optimal_bits(self):
        assert optimal_bits(1000, 0.01) == 9586

    def test_optimal_hash_functions(self):
        assert optimal_hash_functions(0.01) == 7
        assert optimal_hash_functions(DEFAULT_FALSE_POSITIVE_RATE) == 10
        assert optimal_hash_functions(MIN_FALSE_POSITIVE_RATE) == 20

    def test_derived_fields(self):
        bf = BloomFilter(1000, 0.01)
        assert bf.num_bits == 9586
        assert bf.num_hash_functions == 7
        assert len(bf.to_bytes()) == 1199

    def test_default_rate(self):
        bf = BloomFilter(100)
        assert bf.false_positive_probability == DEFAULT_FALSE_POSITIVE_RATE


class TestConstruction:
    """Test parameter validation"""

    @pytest.mark.parametrize("expected_size", [0, -5])
    def test_rejects_non_positive_size(self, expected_size):
        with pytest.raises(InvalidParameterError):
            BloomFilter(expected_size, 0.01)

    @pytest.mark.parametrize("p", [0.0, 1.0, -0.1, 1.5, MIN_FALSE_POSITIVE_RATE / 10])
    def test_rejects_bad_probability(self, p):
        with pytest.raises(InvalidParameterError):
            BloomFilter(1000, p)

    def test_invalid_parameter_is_value_error(self):
        with pytest.raises(ValueError):
            BloomFilter(0)

    def test_rejects_oversized_buffer(self):
        with pytest.raises(CapacityError):
            BloomFilter(1000, 0.01, bytes(1200))

    def test_rejects_bits_beyond_capacity(self):
        """9586 bits leave 2 usable bits in the last byte"""
        with pytest.raises(CapacityError):
            BloomFilter(1000, 0.01, bytes(1198) + b"\x04")

    def test_accepts_bits_within_capacity(self):
        bf = BloomFilter(1000, 0.01, bytes(1198) + b"\x03")
        assert bf.set_bits() == 2

    def test_short_buffer_is_zero_padded(self):
        bf = BloomFilter(1000, 0.01, b"\x01")
        assert len(bf.to_bytes()) == 1199
        assert bf.to_bytes()[0] == 1
        assert bf.set_bits() == 1


class TestMembership:
    """Test add and might_contain"""

    def test_no_false_negatives(self):
        """Every inserted value must be reported present"""
        bf = BloomFilter(10_000, 0.01)
        values = [f"user{i}" for i in range(10_000)]
        bf.add_all(values)

        assert all(bf.might_contain(v) for v in values)

    def test_false_positive_rate_near_target(self):
        bf = BloomFilter(10_000, 0.01)
        bf.add_all(f"user{i}" for i in range(10_000))

        false_positives = sum(1 for i in range(10_000) if f"other{i}" in bf)
        assert false_positives / 10_000 < 0.02

    def test_mixed_value_types(self):
        bf = BloomFilter(100, 0.01)
        bf.add(42)
        bf.add(("tenant", 7))
        bf.add(b"raw")

        assert 42 in bf
        assert 42.0 in bf
        assert ("tenant", 7) in bf
        assert b"raw" in bf

    def test_none_rejected(self):
        bf = BloomFilter(100)
        with pytest.raises(MissingValueError):
            bf.add(None)
        with pytest.raises(MissingValueError):
            bf.might_contain(None)

    def test_empty(self):
        bf = BloomFilter(100)
        assert bf.is_empty()
        assert "anything" not in bf
        bf.add("x")
        assert not bf.is_empty()


class TestApproximateSize:
    """Test cardinality estimate"""

    def test_empty_filter(self):
        assert BloomFilter(1000, 0.01).approximate_size() == 0

    def test_estimate_close_to_true_count(self):
        bf = BloomFilter(1000, 0.01)
        bf.add_all(range(1000))
        assert 900 <= bf.approximate_size() <= 1100

    def test_duplicates_not_counted(self):
        once = BloomFilter(1000, 0.01)
        once.add("same")

        bf = BloomFilter(1000, 0.01)
        for _ in range(10):
            bf.add("same")

        assert bf.approximate_size() == once.approximate_size()
        assert bf.approximate_size() <= 2

    def test_cached_until_mutation(self):
        bf = BloomFilter(1000, 0.01)
        bf.add("a")
        assert bf._approximate_size is None

        size = bf.approximate_size()
        assert bf._approximate_size == size

        bf.add("b")
        assert bf._approximate_size is None

        bf.approximate_size()
        bf.merge(BloomFilter(1000, 0.01))
        assert bf._approximate_size is None

    def test_saturated_filter(self):
        """Every bit set: the log formula diverges, estimate is num_bits"""
        bf = BloomFilter(1, 0.5, b"\x03")
        assert bf.num_bits == 2
        assert bf.approximate_size() == 2

    def test_len(self):
        bf = BloomFilter(1000, 0.01)
        bf.add_all(["a", "b", "c"])
        assert len(bf) == bf.approximate_size()


class TestMerge:
    """Test union and merge"""

    def _filled(self, values):
        bf = BloomFilter(1000, 0.01)
        bf.add_all(values)
        return bf

    def test_merge_in_place(self):
        a = self._filled(["x"])
        b = self._filled(["y"])
        a.merge(b)

        assert "x" in a and "y" in a
        assert "x" not in b

    def test_union_does_not_mutate(self):
        a = self._filled(["x"])
        b = self._filled(["y"])
        before = a.to_bytes()

        c = a.union(b)

        assert a.to_bytes() == before
        assert "x" in c and "y" in c

    def test_union_equals_single_filter(self):
        whole = self._filled(range(200))
        parts = self._filled(range(100)).union(self._filled(range(100, 200)))
        assert parts == whole

    def test_commutative(self):
        a = self._filled(range(50))
        b = self._filled(range(50, 120))
        assert a.union(b) == b.union(a)

    def test_associative(self):
        a = self._filled(range(30))
        b = self._filled(range(30, 60))
        c = self._filled(range(60, 90))
        assert a.union(b).union(c) == a.union(b.union(c))

    def test_incompatible_bit_count(self):
        with pytest.raises(IncompatibleOperandsError):
            BloomFilter(1000, 0.01).merge(BloomFilter(2000, 0.01))

    def test_incompatible_hash_count(self):
        with pytest.raises(IncompatibleOperandsError):
            BloomFilter(1000, 0.01).union(BloomFilter(1000, 0.001))

    def test_not_a_filter(self):
        with pytest.raises(IncompatibleOperandsError):
            BloomFilter(1000).merge("not a filter")


class TestSerialization:
    """Test byte round trips and equality"""

    def test_from_bytes(self):
        bf = BloomFilter(500, 0.01)
        bf.add_all(["a", "b"])

        restored = BloomFilter.from_bytes(bf.to_bytes(), 500, 0.01)

        assert restored == bf
        assert "a" in restored

    def test_bit_layout_is_little_endian(self):
        """Bit i is byte i // 8, mask 1 << (i % 8)"""
        bf = BloomFilter(1000, 0.01)
        bf.add("sample")
        data = bf.to_bytes()
        positions = bf._get_positions("sample")

        for position in positions:
            assert data[position // 8] & (1 << (position % 8))
        assert bf.set_bits() == len(set(positions))

    def test_known_layout(self):
        """Bit positions are fixed for every process and version"""
        bf = BloomFilter(100, 0.01)
        bf.add("user1")

        assert bf.num_bits == 959
        assert sorted(bf._get_positions("user1")) == [100, 107, 226, 432, 499, 572, 786]

        expected = bytearray(120)
        expected[12] = 0x10
        expected[13] = 0x08
        expected[28] = 0x04
        expected[54] = 0x01
        expected[62] = 0x08
        expected[71] = 0x10
        expected[98] = 0x04
        assert bf.to_bytes() == bytes(expected)

    def test_equality_includes_parameters(self):
        assert BloomFilter(1000, 0.01) == BloomFilter(1000, 0.01)
        assert BloomFilter(1000, 0.01) != BloomFilter(1001, 0.01)

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(BloomFilter(10))

    def test_copy_is_independent(self):
        bf = BloomFilter(100)
        clone = bf.copy()
        clone.add("x")
        assert bf.is_empty()


class TestFit:
    """Test batch construction"""

    def test_fit_counts_values(self):
        values = [f"v{i}" for i in range(250)]
        bf = BloomFilter.fit(values, false_positive_probability=0.01)

        assert bf.expected_size == 250
        assert all(v in bf for v in values)

    def test_fit_counts_generator(self):
        """A one-shot iterable is collected before it is counted"""
        bf = BloomFilter.fit((f"user{i}" for i in range(100)), false_positive_probability=0.01)

        assert bf.expected_size == 100
        assert not bf.is_empty()
        assert all(f"user{i}" in bf for i in range(100))

    def test_fit_with_expected_size(self):
        bf = BloomFilter.fit(iter(["a", "b"]), expected_size=10)
        assert bf.expected_size == 10
        assert "a" in bf

    def test_fit_empty_rejected(self):
        with pytest.raises(InvalidParameterError):
            BloomFilter.fit([])
