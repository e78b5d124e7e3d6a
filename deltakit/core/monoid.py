"""
Monoid abstractions inspired by Twitter Algebird

A Monoid is an algebraic structure with:
1. An identity element (zero)
2. An associative binary operation (plus)

This enables:
- Composable aggregations
- Distributed processing (merge partial sketches in any grouping)
- Incremental updates

Every sketch in deltakit merges commutatively and associatively, so each one
has a monoid in deltakit.core.monoids and can be reduced with these helpers.
"""
from abc import ABC, abstractmethod
from functools import reduce
from typing import Generic, Iterable, List, Optional, TypeVar

T = TypeVar('T')


class Semigroup(ABC, Generic[T]):
    """
    Semigroup: Like a Monoid but without requiring zero/identity
    Useful when identity element is not obvious

    Law: plus(plus(a, b), c) == plus(a, plus(b, c))
    """

    @abstractmethod
    def plus(self, a: T, b: T) -> T:
        """Combine two elements. Must not mutate either operand."""

    def sum_nonempty(self, items: Iterable[T]) -> Optional[T]:
        """
        Sum non-empty list of elements

        Args:
            items: Non-empty list of elements

        Returns:
            Combined result or None if list is empty
        """
        items = list(items)
        if not items:
            return None
        return reduce(self.plus, items)


class Monoid(Semigroup[T]):
    """
    Monoid interface

    Laws that implementations must satisfy:
    1. Identity: plus(zero, x) == x and plus(x, zero) == x
    2. Associativity: plus(plus(a, b), c) == plus(a, plus(b, c))
    """

    @abstractmethod
    def zero(self) -> T:
        """Identity element. Returns a fresh instance on every call."""

    def sum(self, items: Iterable[T]) -> T:
        """
        Combine all items, starting from zero

        Args:
            items: Elements to combine

        Returns:
            Combined result (zero for no items)
        """
        return reduce(self.plus, items, self.zero())

    def sum_option(self, items: List[Optional[T]]) -> Optional[T]:
        """
        Sum a list of optional elements, skipping None values

        Args:
            items: List of optional elements

        Returns:
            Combined result or None if all inputs are None
        """
        non_none = [item for item in items if item is not None]
        if not non_none:
            return None
        return self.sum(non_none)


# ============================================================
# Aggregator: Incremental monoid-based accumulation
# ============================================================

class Aggregator(Generic[T]):
    """
    Algebird-style Aggregator for incremental aggregation

    Folds elements of the monoid into a running total.
    """

    def __init__(self, monoid: Monoid[T]):
        self.monoid = monoid
        self.accumulated = monoid.zero()

    def append(self, value: T) -> 'Aggregator[T]':
        """Add a value to the accumulator"""
        self.accumulated = self.monoid.plus(self.accumulated, value)
        return self

    def append_all(self, values: Iterable[T]) -> 'Aggregator[T]':
        """Add multiple values"""
        for value in values:
            self.append(value)
        return self

    def get(self) -> T:
        """Get current accumulated value"""
        return self.accumulated

    def reset(self) -> 'Aggregator[T]':
        """Reset to zero"""
        self.accumulated = self.monoid.zero()
        return self

    def merge(self, other: 'Aggregator[T]') -> 'Aggregator[T]':
        """Merge with another aggregator"""
        self.accumulated = self.monoid.plus(self.accumulated, other.accumulated)
        return self


# ============================================================
# Utility Functions
# ============================================================

def sum_monoid(monoid: Monoid[T], items: Iterable[T]) -> T:
    """
    Convenience function to sum items using a monoid

    Args:
        monoid: Monoid instance
        items: Items to sum

    Returns:
        Combined result
    """
    return monoid.sum(items)


def merge_map(monoid: Semigroup[T], maps: Iterable[dict]) -> dict:
    """
    Merge multiple dictionaries using monoid for value combination

    Args:
        monoid: Monoid for combining values
        maps: Dictionaries to merge

    Returns:
        Merged dictionary
    """
    result = {}
    for m in maps:
        for key, value in m.items():
            if key in result:
                result[key] = monoid.plus(result[key], value)
            else:
                result[key] = value
    return result
