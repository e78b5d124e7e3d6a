"""
Moments Monoid for Gaussian fitting

Tracks (sum, sum of squares, count) in O(1) space. The fields are plain
sums, so partial sketches from any number of shards add up to the sketch of
the whole stream, and a Gaussian can be fit from the result.
"""
from typing import Iterable

from deltakit.core.monoid import Monoid
from deltakit.core.sketches.gaussian import GaussianDistribution, GaussianSketch


class GaussianSketchMonoid(Monoid[GaussianSketch]):
    """
    Monoid for Gaussian moment sketches

    Example usage:
        monoid = GaussianSketchMonoid()

        # Shard 1
        s1 = monoid.from_values([100, 150, 120, 180])

        # Shard 2
        s2 = monoid.from_values([140, 160, 130, 170])

        dist = monoid.plus(s1, s2).to_distribution()
        print(f"mu={dist.mu:.2f} sigma={dist.sigma:.2f}")
    """

    def zero(self) -> GaussianSketch:
        """
        Identity element: no observations

        Returns:
            Empty sketch
        """
        return GaussianSketch()

    def plus(self, a: GaussianSketch, b: GaussianSketch) -> GaussianSketch:
        """
        Field-wise sum of two sketches

        Args:
            a: First sketch
            b: Second sketch

        Returns:
            New combined sketch
        """
        result = a.copy()
        result.merge(b)
        return result

    def from_value(self, value: float) -> GaussianSketch:
        """Sketch of a single observation"""
        return GaussianSketch(value, value * value, 1)

    def from_values(self, values: Iterable[float]) -> GaussianSketch:
        """
        Sketch of many observations

        Example:
            monoid = GaussianSketchMonoid()
            s = monoid.from_values([1, 2, 3])
            print(s.mean)  # 2.0
        """
        sketch = self.zero()
        sketch.observe_all(values)
        return sketch

    def fit(self, sketches: Iterable[GaussianSketch]) -> GaussianDistribution:
        """
        Merge partial sketches and fit a Gaussian

        Raises:
            InsufficientDataError: With fewer than 2 observations in total
            NoVarianceError: If all observations are equal
        """
        return self.sum(sketches).to_distribution()
