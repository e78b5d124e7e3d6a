"""
Monoids for categorical sketches

Categorical and empirical sketches merge by summing counts per category,
uniform sketches by set union. Both are commutative and associative, so
partial sketches can be combined in any order or grouping.
"""
from typing import Generic, Iterable, Tuple, Type, TypeVar

from deltakit.core.monoid import Monoid
from deltakit.core.sketches.categorical import CategoricalSketch, EmpiricalSketch
from deltakit.core.sketches.uniform import UniformSketch

T = TypeVar('T')


class CategoricalSketchMonoid(Monoid[CategoricalSketch], Generic[T]):
    """
    Monoid for category-count sketches

    Example usage:
        monoid = CategoricalSketchMonoid()

        s1 = monoid.from_values(["login", "login", "logout"])
        s2 = monoid.from_counts([("login", 5)])

        merged = monoid.plus(s1, s2)
        print(merged.get("login"))  # 7
    """

    sketch_class: Type[CategoricalSketch] = CategoricalSketch

    def zero(self) -> CategoricalSketch:
        """Identity element: empty sketch"""
        return self.sketch_class()

    def plus(self, a: CategoricalSketch, b: CategoricalSketch) -> CategoricalSketch:
        """
        Key-wise sum of counts

        Returns:
            New sketch; a and b are left unchanged
        """
        result = a.copy()
        result.merge(b)
        return result

    def from_values(self, values: Iterable[T]) -> CategoricalSketch:
        """Sketch with one occurrence per element"""
        sketch = self.zero()
        sketch.observe_all(values)
        return sketch

    def from_counts(self, pairs: Iterable[Tuple[T, int]]) -> CategoricalSketch:
        """Sketch from (category, count) pairs"""
        sketch = self.zero()
        for category, count in pairs:
            sketch.observe(category, count)
        return sketch


class EmpiricalSketchMonoid(CategoricalSketchMonoid[T]):
    """Monoid for sketches that convert to EmpiricalDistribution"""

    sketch_class = EmpiricalSketch


class UniformSketchMonoid(Monoid[UniformSketch], Generic[T]):
    """Monoid for uniform sketches (set union)"""

    def zero(self) -> UniformSketch:
        return UniformSketch()

    def plus(self, a: UniformSketch, b: UniformSketch) -> UniformSketch:
        result = a.copy()
        result.merge(b)
        return result

    def from_values(self, values: Iterable[T]) -> UniformSketch:
        return UniformSketch(values)
