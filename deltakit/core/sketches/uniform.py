"""
Uniform distributions over a set of categories

The degenerate categorical case where every category weighs 1, so sampling
is just a random index into a list. Equality ignores the order of the list.
"""
from typing import Callable, FrozenSet, Generic, Iterable, Optional, Tuple, TypeVar

from deltakit.core.sketches.categorical import stable_items
from deltakit.errors import (
    EmptyDistributionError,
    IncompatibleOperandsError,
    require,
)

T = TypeVar("T")
U = TypeVar("U")


class UniformDistribution(Generic[T]):
    """
    Distribution giving every category the same probability

    Immutable and safe to share between threads.

    Example:
        dist = UniformDistribution({"red", "green", "blue"})
        dist.sample(random.Random(1))
    """

    def __init__(self, categories: Iterable[T]):
        """
        Args:
            categories: Categories; duplicates are collapsed

        Raises:
            MissingValueError: If categories is None or holds None
            EmptyDistributionError: If there are no categories
        """
        distinct = {}
        for category in require(categories, "categories"):
            distinct[require(category, "category")] = 1
        if not distinct:
            raise EmptyDistributionError("distribution must not be empty")
        self._categories: Tuple[T, ...] = tuple(category for category, _ in stable_items(distinct))

    @classmethod
    def _from_list(cls, categories: Tuple[U, ...]) -> "UniformDistribution[U]":
        distribution = cls.__new__(cls)
        distribution._categories = categories
        return distribution

    @classmethod
    def of(cls, categories: Iterable[T]) -> "UniformDistribution[T]":
        """Equivalent to the constructor"""
        return cls(categories)

    @classmethod
    def fit(cls, elements: Iterable[T]) -> "UniformDistribution[T]":
        """One category per distinct element"""
        sketch = UniformSketch()
        sketch.observe_all(require(elements, "elements"))
        return cls.from_sketch(sketch)

    @classmethod
    def from_sketch(cls, sketch: "UniformSketch[T]") -> "UniformDistribution[T]":
        """Snapshot a sketch as a distribution"""
        return cls(require(sketch, "sketch").categories())

    def sample(self, rng) -> T:
        """
        Choose a category uniformly at random

        Args:
            rng: random.Random-like generator (anything with randrange)
        """
        return self._categories[require(rng, "rng").randrange(len(self._categories))]

    def map(self, f: Callable[[T], U]) -> "UniformDistribution[U]":
        """
        Map a distribution of T to a distribution of U

        f should be injective. Colliding images are kept as repeated entries,
        which weights them more heavily; this is not detected.

        Raises:
            MissingValueError: If f is None or returns None
        """
        require(f, "f")
        return type(self)._from_list(
            tuple(require(f(category), "f(category)") for category in self._categories)
        )

    def categories(self) -> Tuple[T, ...]:
        """The categories, in no guaranteed order"""
        return self._categories

    def probability(self, category) -> float:
        """Probability mass of a category (0.0 if absent)"""
        return self._categories.count(category) / len(self._categories)

    def size(self) -> int:
        """Number of categories"""
        return len(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    def __eq__(self, other) -> bool:
        if not isinstance(other, UniformDistribution):
            return NotImplemented
        if len(self._categories) != len(other._categories):
            return False
        return set(self._categories) == set(other._categories)

    def __hash__(self) -> int:
        return hash(frozenset(self._categories))

    def __repr__(self) -> str:
        return f"UniformDistribution({list(self._categories)!r})"


class UniformSketch(Generic[T]):
    """
    Mergeable set of observed categories

    Merging is set union, so it is commutative, associative and idempotent.
    Not synchronized.
    """

    def __init__(self, categories: Optional[Iterable[T]] = None):
        self._categories = set()
        if categories is not None:
            self.observe_all(categories)

    def observe(self, category: T) -> None:
        """
        Record a category

        Raises:
            MissingValueError: If category is None
        """
        self._categories.add(require(category, "category"))

    def observe_all(self, categories: Iterable[T]) -> None:
        for category in categories:
            self.observe(category)

    def merge(self, other: "UniformSketch[T]") -> None:
        """
        Add another sketch's categories to this one (in place)

        Raises:
            IncompatibleOperandsError: If other is not a UniformSketch
        """
        if not isinstance(other, UniformSketch):
            raise IncompatibleOperandsError(
                f"cannot merge UniformSketch with {type(other).__name__}"
            )
        self._categories |= other._categories

    def copy(self) -> "UniformSketch[T]":
        return UniformSketch(self._categories)

    def categories(self) -> FrozenSet[T]:
        return frozenset(self._categories)

    def is_empty(self) -> bool:
        return not self._categories

    def to_distribution(self) -> UniformDistribution[T]:
        """
        Snapshot the sketch as a distribution

        Raises:
            EmptyDistributionError: If nothing has been observed
        """
        return UniformDistribution.from_sketch(self)

    def __contains__(self, category) -> bool:
        return category in self._categories

    def __len__(self) -> int:
        return len(self._categories)

    def __eq__(self, other) -> bool:
        if not isinstance(other, UniformSketch):
            return NotImplemented
        return self._categories == other._categories

    __hash__ = None

    def __repr__(self) -> str:
        return f"UniformSketch({self._categories!r})"
