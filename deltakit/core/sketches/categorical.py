"""
Categorical (weighted) distributions and the sketches that fit them

A categorical distribution is stored as a CDF offset map: for each category,
the sum of the weights of the categories laid out before it. Sampling draws
x uniformly from [0, total) and returns the category with the greatest
offset <= x, which is a binary search over the offsets.

    weights {A: 1, B: 3}  ->  offsets [0, 1], categories [A, B], total 4
    x in {0}        -> A
    x in {1, 2, 3}  -> B

Sketches accumulate counts per category and merge by key-wise summation,
so any partition of the input gives the same final counts.
"""
import bisect
import numbers
from collections.abc import Iterable as IterableABC
from types import MappingProxyType
from typing import Callable, Dict, Generic, Iterable, Iterator, Mapping, Optional, Tuple, TypeVar

from deltakit.errors import (
    EmptyDistributionError,
    IncompatibleOperandsError,
    InvalidArgumentError,
    MissingValueError,
    require,
)

T = TypeVar("T")
U = TypeVar("U")


def _check_count(category, count) -> None:
    if category is None or count is None:
        raise MissingValueError("categories and counts must not be None")
    if isinstance(count, bool) or not isinstance(count, numbers.Integral):
        raise InvalidArgumentError(f"counts must be integers, got {type(count).__name__}")
    if count < 0:
        raise InvalidArgumentError("counts must not be negative")


def _layout_key(category) -> tuple:
    """
    Deterministic sort key for categories with no total order of their own

    Keys are (rank, type name, payload) triples, so keys of different kinds
    compare on rank alone and payloads only meet payloads of the same kind.
    """
    if isinstance(category, numbers.Real):
        if category != category:
            return (1, "", 0)
        return (0, "", category)
    if isinstance(category, str):
        return (2, "", category)
    if isinstance(category, (bytes, bytearray)):
        return (3, "", bytes(category))
    if isinstance(category, tuple):
        return (4, "", tuple(_layout_key(element) for element in category))
    if isinstance(category, (frozenset, set)):
        return (5, "", tuple(sorted(_layout_key(element) for element in category)))
    return (6, type(category).__qualname__, repr(category))


def stable_items(counts: Mapping[T, int]) -> list:
    """
    Items of a count mapping in a layout independent of insertion order

    Categories are sorted naturally when that gives a strict total order, so
    sketches that hold the same counts convert to equal distributions however
    their input was partitioned. Mixed types and partial orders such as
    frozenset inclusion fall back to a deterministic key of type and value.
    """
    items = list(counts.items())
    try:
        ordered = sorted(items, key=lambda item: item[0])
        if all(a[0] < b[0] for a, b in zip(ordered, ordered[1:])):
            return ordered
    except TypeError:
        pass
    return sorted(items, key=lambda item: _layout_key(item[0]))


class CategoryWeights(IterableABC):
    """
    Lazy, restartable view of (category, weight) pairs

    Weights are re-derived from consecutive CDF offsets on each iteration.
    """

    def __init__(self, offsets: Tuple[int, ...], categories: tuple, total: int):
        self._offsets = offsets
        self._categories = categories
        self._total = total

    def __iter__(self) -> Iterator[Tuple[object, int]]:
        ends = self._offsets[1:] + (self._total,)
        for category, start, end in zip(self._categories, self._offsets, ends):
            yield category, end - start

    def __len__(self) -> int:
        return len(self._categories)

    def __repr__(self) -> str:
        return f"CategoryWeights({list(self)!r})"


class CategoricalDistribution(Generic[T]):
    """
    Probability distribution over a finite set of categories

    Categories need not be comparable, but must be hashable and not None.
    Sampling is O(log n) in the number of categories.

    Instances are immutable and safe to share between threads. The random
    generator passed to sample() is not; use one generator per thread.

    Example:
        dist = CategoricalDistribution({"A": 1, "B": 3})
        dist.sample(random.Random(7))  # "B" three times as often as "A"
    """

    def __init__(self, weights: Mapping[T, int]):
        """
        Create a distribution from a mapping of categories to weights

        Categories with weight 0 are skipped.

        Args:
            weights: Mapping of category -> non-negative integer weight

        Raises:
            MissingValueError: If weights is None or holds a None key or value
            InvalidArgumentError: If a weight is negative or not an integer
            EmptyDistributionError: If no category has a positive weight
        """
        require(weights, "weights")

        offsets = []
        categories = []
        total = 0
        for category, weight in weights.items():
            _check_count(category, weight)
            if weight == 0:
                continue
            offsets.append(total)
            categories.append(category)
            total += int(weight)

        if total == 0:
            raise EmptyDistributionError(
                "distribution must have at least one category with positive weight"
            )

        self._offsets = tuple(offsets)
        self._categories = tuple(categories)
        self._total = total

    @classmethod
    def _from_cdf(cls, offsets: Tuple[int, ...], categories: tuple, total: int):
        distribution = cls.__new__(cls)
        distribution._offsets = offsets
        distribution._categories = categories
        distribution._total = total
        return distribution

    # =====================
    # Construction helpers
    # =====================

    @classmethod
    def of(cls, weights: Mapping[T, int]):
        """Equivalent to the constructor"""
        return cls(weights)

    @classmethod
    def from_sketch(cls, sketch: "CategoricalSketch[T]"):
        """
        Snapshot a sketch as a distribution

        The sketch is left untouched and may keep accumulating.
        """
        return cls(dict(stable_items(require(sketch, "sketch").categories())))

    @classmethod
    def fit_occurrences(cls, elements: Iterable[T]):
        """
        Fit to a stream of elements, weighting each by its number of occurrences

        Example:
            CategoricalDistribution.fit_occurrences("abbccc")  # a:1 b:2 c:3
        """
        sketch = CategoricalSketch()
        sketch.observe_all(require(elements, "elements"))
        return cls.from_sketch(sketch)

    @classmethod
    def fit_counts(cls, pairs: Iterable[Tuple[T, int]]):
        """
        Fit to a stream of (element, count) pairs

        Counts for repeated elements are summed; zero totals are ignored.
        """
        sketch = CategoricalSketch()
        for category, count in require(pairs, "pairs"):
            sketch.observe(category, count)
        return cls.from_sketch(sketch)

    @classmethod
    def fit_uniform(cls, elements: Iterable[T]):
        """Fit with weight 1 for every distinct element"""
        weights = {}
        for category in require(elements, "elements"):
            weights[require(category, "category")] = 1
        return cls(dict(stable_items(weights)))

    # =====================
    # Queries
    # =====================

    @property
    def total(self) -> int:
        """Sum of all weights"""
        return self._total

    def sample(self, rng) -> T:
        """
        Choose a weighted random category

        Args:
            rng: random.Random-like generator (anything with randrange)

        Returns:
            A category; never one with weight 0
        """
        x = require(rng, "rng").randrange(self._total)
        return self._categories[bisect.bisect_right(self._offsets, x) - 1]

    def map(self, f: Callable[[T], U]) -> "CategoricalDistribution[U]":
        """
        Map a distribution of T to a distribution of U

        Offsets and total are kept, so f should be injective over the
        categories. Colliding images are not detected: the result then holds
        the same value at several offsets.

        Raises:
            MissingValueError: If f is None or returns None
        """
        require(f, "f")
        categories = tuple(require(f(category), "f(category)") for category in self._categories)
        return type(self)._from_cdf(self._offsets, categories, self._total)

    def categories(self) -> CategoryWeights:
        """(category, weight) pairs in CDF order"""
        return CategoryWeights(self._offsets, self._categories, self._total)

    def to_dict(self) -> Dict[T, int]:
        """Category -> weight mapping"""
        return dict(self.categories())

    def probability(self, category) -> float:
        """Probability mass of a category (0.0 if absent)"""
        weight = sum(w for c, w in self.categories() if c == category)
        return weight / self._total

    def size(self) -> int:
        """Number of categories"""
        return len(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CategoricalDistribution):
            return NotImplemented
        return (
            self._total == other._total
            and self._offsets == other._offsets
            and self._categories == other._categories
        )

    def __hash__(self) -> int:
        return hash((self._offsets, self._categories, self._total))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_dict()!r}, total={self._total})"


class EmpiricalDistribution(CategoricalDistribution[T]):
    """
    Categorical distribution fit directly from observed counts

    Example:
        dist = EmpiricalDistribution.fit_occurrences(["a", "b", "b"])
    """


class CategoricalSketch(Generic[T]):
    """
    Mergeable accumulator of category counts

    Zero counts are never retained. Not synchronized: give each worker its
    own sketch and merge them afterwards.

    Example:
        morning = CategoricalSketch()
        morning.observe_all(["login", "login", "logout"])

        evening = CategoricalSketch({"login": 5})
        morning.merge(evening)

        morning.to_distribution()  # login: 7, logout: 1
    """

    distribution_class = CategoricalDistribution

    def __init__(self, counts: Optional[Mapping[T, int]] = None):
        """
        Create a sketch, optionally seeded with counts

        Raises:
            MissingValueError: If counts holds a None key or value
            InvalidArgumentError: If counts holds a negative count
        """
        self._counts: Dict[T, int] = {}
        if counts is not None:
            for category, count in counts.items():
                self.observe(category, count)

    def observe(self, category: T, count: int = 1) -> None:
        """
        Record count occurrences of a category

        Args:
            category: Category to count
            count: Non-negative number of occurrences; 0 is ignored

        Raises:
            MissingValueError: If category is None
            InvalidArgumentError: If count is negative
        """
        _check_count(category, count)
        if count > 0:
            self._counts[category] = self._counts.get(category, 0) + int(count)

    def observe_all(self, categories: Iterable[T]) -> None:
        """Record one occurrence of each element"""
        for category in categories:
            self.observe(category)

    def merge(self, other: "CategoricalSketch[T]") -> None:
        """
        Add another sketch's counts to this one (in place)

        Raises:
            IncompatibleOperandsError: If other is a different kind of sketch
        """
        if type(other) is not type(self):
            raise IncompatibleOperandsError(
                f"cannot merge {type(self).__name__} with {type(other).__name__}"
            )
        for category, count in other._counts.items():
            self._counts[category] = self._counts.get(category, 0) + count

    def copy(self):
        """Independent copy of this sketch"""
        sketch = type(self)()
        sketch._counts = dict(self._counts)
        return sketch

    def get(self, category: T) -> int:
        """Count for a category (0 if never observed)"""
        return self._counts.get(category, 0)

    def categories(self) -> Mapping[T, int]:
        """Read-only view of category -> count"""
        return MappingProxyType(self._counts)

    @property
    def count(self) -> int:
        """Total number of observations"""
        return sum(self._counts.values())

    def is_empty(self) -> bool:
        return not self._counts

    def to_distribution(self):
        """
        Snapshot the sketch as a distribution

        Raises:
            EmptyDistributionError: If nothing has been observed
        """
        return self.distribution_class.from_sketch(self)

    def __len__(self) -> int:
        return len(self._counts)

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._counts == other._counts

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._counts!r})"


class EmpiricalSketch(CategoricalSketch[T]):
    """Sketch that converts to an EmpiricalDistribution"""

    distribution_class = EmpiricalDistribution
