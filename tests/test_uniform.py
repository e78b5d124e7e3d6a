"""
Tests for uniform distributions and sketches
"""
import pytest

from deltakit.core.sketches.uniform import UniformDistribution, UniformSketch
from deltakit.core.sketches.categorical import CategoricalSketch
from deltakit.errors import EmptyDistributionError, IncompatibleOperandsError, MissingValueError


class TestUniformDistribution:
    """Test construction, sampling and equality"""

    def test_duplicates_collapsed(self):
        dist = UniformDistribution(["a", "b", "a"])
        assert dist.size() == 2
        assert len(dist) == 2

    def test_empty_rejected(self):
        with pytest.raises(EmptyDistributionError):
            UniformDistribution([])

    def test_none_rejected(self):
        with pytest.raises(MissingValueError):
            UniformDistribution(["a", None])

    def test_equality_ignores_order(self):
        a = UniformDistribution(["red", "green", "blue"])
        b = UniformDistribution.of(["blue", "red", "green"])
        assert a == b
        assert hash(a) == hash(b)
        assert a != UniformDistribution(["red", "green"])

    def test_probability(self):
        dist = UniformDistribution({1, 2, 3, 4})
        assert dist.probability(3) == pytest.approx(0.25)
        assert dist.probability(9) == 0.0

    def test_sampling_covers_all(self, rng):
        dist = UniformDistribution(range(5))
        draws = [dist.sample(rng) for _ in range(20_000)]

        assert set(draws) == {0, 1, 2, 3, 4}
        for value in range(5):
            assert 0.18 < draws.count(value) / len(draws) < 0.22

    def test_sample_requires_rng(self):
        with pytest.raises(MissingValueError):
            UniformDistribution(["a"]).sample(None)

    def test_fit(self):
        assert UniformDistribution.fit("abca") == UniformDistribution("abc")

    def test_map(self):
        dist = UniformDistribution([1, 2]).map(lambda c: c + 1)
        assert dist == UniformDistribution([2, 3])

    def test_map_collisions_kept(self):
        """Colliding images are repeated entries, not collapsed"""
        dist = UniformDistribution([1, 2]).map(lambda c: "x")
        assert dist.size() == 2
        assert dist.probability("x") == pytest.approx(1.0)

    def test_map_none_rejected(self):
        with pytest.raises(MissingValueError):
            UniformDistribution([1]).map(lambda c: None)


class TestUniformSketch:
    """Test set accumulation and merging"""

    def test_observe(self):
        sketch = UniformSketch()
        sketch.observe("a")
        sketch.observe_all(["a", "b"])

        assert len(sketch) == 2
        assert "b" in sketch
        assert sketch.categories() == frozenset({"a", "b"})

    def test_none_rejected(self):
        with pytest.raises(MissingValueError):
            UniformSketch().observe(None)

    def test_merge_is_union(self):
        a = UniformSketch(["x", "y"])
        b = UniformSketch(["y", "z"])
        a.merge(b)

        assert a == UniformSketch(["x", "y", "z"])
        assert b == UniformSketch(["y", "z"])

    def test_merge_idempotent(self):
        a = UniformSketch(["x"])
        a.merge(a.copy())
        assert a == UniformSketch(["x"])

    def test_merge_other_kind_rejected(self):
        with pytest.raises(IncompatibleOperandsError):
            UniformSketch().merge(CategoricalSketch())

    def test_to_distribution(self):
        dist = UniformSketch(["b", "a"]).to_distribution()
        assert dist == UniformDistribution(["a", "b"])

    def test_partition_invariance(self):
        values = [3, 1, 4, 1, 5, 9, 2, 6, 5, 3, 5]
        whole = UniformSketch(values)
        left = UniformSketch(values[:4])
        left.merge(UniformSketch(values[4:]))

        assert left == whole
        assert left.to_distribution() == whole.to_distribution()
        assert left.to_distribution().categories() == whole.to_distribution().categories()

    def test_empty_to_distribution(self):
        with pytest.raises(EmptyDistributionError):
            UniformSketch().to_distribution()
