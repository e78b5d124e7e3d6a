"""
Aggregation utilities using Monoids

High-level operations for:
- Sharded fitting (accumulate partitions independently, then merge)
- Distributed processing (merge partial sketches from workers)
- Multi-source aggregation
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar
import logging

from deltakit.config import settings
from deltakit.core.monoid import Monoid
from deltakit.core.monoids.bloom_monoid import BloomFilterUnionMonoid
from deltakit.core.monoids.categorical_monoid import (
    CategoricalSketchMonoid,
    EmpiricalSketchMonoid,
    UniformSketchMonoid,
)
from deltakit.core.monoids.moments_monoid import GaussianSketchMonoid
from deltakit.core.sketches.bloom_filter import BloomFilter
from deltakit.core.sketches.categorical import CategoricalDistribution, EmpiricalDistribution
from deltakit.core.sketches.gaussian import GaussianDistribution
from deltakit.core.sketches.uniform import UniformDistribution
from deltakit.errors import InvalidArgumentError, require

logger = logging.getLogger(__name__)

T = TypeVar('T')
S = TypeVar('S')


def partition(items: Iterable[T], n: int) -> List[List[T]]:
    """
    Split items round-robin into n shards

    Args:
        items: Items to split
        n: Number of shards (>= 1)

    Returns:
        List of n lists; some may be empty when there are fewer than n items
    """
    if n < 1:
        raise InvalidArgumentError(f"number of partitions must be positive, got {n}")
    shards: List[List[T]] = [[] for _ in range(n)]
    for i, item in enumerate(items):
        shards[i % n].append(item)
    return shards


def tree_reduce(monoid: Monoid[T], items: Iterable[T]) -> T:
    """
    Combine items pairwise, level by level

    Gives the same result as monoid.sum(items) for any associative monoid,
    with depth log2(n) instead of n.
    """
    level = list(items)
    if not level:
        return monoid.zero()
    while len(level) > 1:
        paired = [monoid.plus(level[i], level[i + 1]) for i in range(0, len(level) - 1, 2)]
        if len(level) % 2:
            paired.append(level[-1])
        level = paired
    return level[0]


class ShardedFitter(Generic[S, T]):
    """
    Accumulate shards into private sketches and merge the results

    Each shard gets its own sketch from monoid.zero(), so no sketch is ever
    touched by more than one thread.

    Example:
        fitter = ShardedFitter(GaussianSketchMonoid(), GaussianSketch.observe, workers=4)
        sketch = fitter.fit(partition(values, 4))
        dist = sketch.to_distribution()
    """

    def __init__(
        self,
        monoid: Monoid[S],
        observe: Callable[[S, T], None],
        workers: Optional[int] = None,
    ):
        """
        Args:
            monoid: Monoid whose zero() is the empty sketch
            observe: Adds one element to a sketch in place
            workers: Thread count; None or 1 runs shards serially
        """
        if workers is not None and workers < 1:
            raise InvalidArgumentError(f"workers must be positive, got {workers}")
        self.monoid = require(monoid, "monoid")
        self.observe = require(observe, "observe")
        self.workers = workers

    def accumulate(self, shard: Iterable[T]) -> S:
        """Fold one shard into a fresh sketch"""
        sketch = self.monoid.zero()
        for item in shard:
            self.observe(sketch, item)
        return sketch

    def fit(self, shards: Iterable[Iterable[T]]) -> S:
        """
        Accumulate every shard and merge the partial sketches

        Args:
            shards: Independent groups of elements

        Returns:
            Merged sketch
        """
        shards = list(shards)
        if self.workers is None or self.workers == 1 or len(shards) <= 1:
            partials = [self.accumulate(shard) for shard in shards]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                partials = list(executor.map(self.accumulate, shards))

        logger.debug(
            "Merging %d partial sketches from %s", len(partials), type(self.monoid).__name__
        )
        return tree_reduce(self.monoid, partials)


class DistributedAggregator(Generic[T]):
    """
    Aggregate results from distributed workers using monoids

    Useful for merging partial sketches published by parallel workers
    """

    def __init__(self, monoid: Monoid[T]):
        self.monoid = monoid

    def aggregate_workers(self, worker_results: List[T]) -> T:
        """
        Merge results from multiple workers

        Args:
            worker_results: List of results from different workers

        Returns:
            Combined result

        Example:
            aggregator = DistributedAggregator(CategoricalSketchMonoid())
            final = aggregator.aggregate_workers([sketch1, sketch2, sketch3])
        """
        return tree_reduce(self.monoid, worker_results)

    def aggregate_with_metadata(self, worker_results: Dict[str, T]) -> Tuple[T, int, List[str]]:
        """
        Aggregate with worker metadata

        Args:
            worker_results: Dict mapping worker_id to result

        Returns:
            (combined_result, worker_count, worker_ids)
        """
        results = list(worker_results.values())
        combined = self.aggregate_workers(results)
        return (combined, len(results), list(worker_results.keys()))


# ============================================================
# Convenience functions for common patterns
# ============================================================

def _fit_sketch(monoid, observe, values, partitions, workers):
    if partitions is None:
        partitions = settings.FIT_PARTITIONS
    if workers is None:
        workers = settings.FIT_WORKERS
    fitter = ShardedFitter(monoid, observe, workers=workers)
    return fitter.fit(partition(values, partitions))


def fit_categorical(
    values: Iterable[T],
    partitions: Optional[int] = None,
    workers: Optional[int] = None,
) -> CategoricalDistribution:
    """
    Fit a categorical distribution from occurrences, shard by shard

    Args:
        values: One element per occurrence
        partitions: Shard count (default: settings.FIT_PARTITIONS)
        workers: Thread count (default: settings.FIT_WORKERS)

    Returns:
        Distribution weighted by occurrence counts

    Raises:
        EmptyDistributionError: If values is empty
    """
    sketch = _fit_sketch(
        CategoricalSketchMonoid(), lambda s, v: s.observe(v), values, partitions, workers
    )
    return sketch.to_distribution()


def fit_empirical(
    values: Iterable[T],
    partitions: Optional[int] = None,
    workers: Optional[int] = None,
) -> EmpiricalDistribution:
    """Like fit_categorical, producing an EmpiricalDistribution"""
    sketch = _fit_sketch(
        EmpiricalSketchMonoid(), lambda s, v: s.observe(v), values, partitions, workers
    )
    return sketch.to_distribution()


def fit_uniform(
    values: Iterable[T],
    partitions: Optional[int] = None,
    workers: Optional[int] = None,
) -> UniformDistribution:
    """Fit a uniform distribution over the distinct values"""
    sketch = _fit_sketch(
        UniformSketchMonoid(), lambda s, v: s.observe(v), values, partitions, workers
    )
    return sketch.to_distribution()


def fit_gaussian(
    values: Iterable[float],
    partitions: Optional[int] = None,
    workers: Optional[int] = None,
) -> GaussianDistribution:
    """
    Fit a Gaussian from moment sketches accumulated per shard

    Raises:
        InsufficientDataError: With fewer than 2 values
        NoVarianceError: If all values are equal
    """
    sketch = _fit_sketch(
        GaussianSketchMonoid(), lambda s, v: s.observe(v), values, partitions, workers
    )
    return sketch.to_distribution()


def fit_bloom_filter(
    values: Iterable,
    expected_size: Optional[int] = None,
    false_positive_probability: Optional[float] = None,
    partitions: Optional[int] = None,
    workers: Optional[int] = None,
) -> BloomFilter:
    """
    Build a Bloom filter from partial filters filled per shard

    Args:
        values: Values to add
        expected_size: Expected number of values (default: count them)
        false_positive_probability: Desired rate
            (default: settings.BLOOM_FALSE_POSITIVE_RATE)
        partitions: Shard count (default: settings.FIT_PARTITIONS)
        workers: Thread count (default: settings.FIT_WORKERS)

    Returns:
        Filter equal to adding every value to one filter

    Raises:
        InvalidParameterError: If expected_size is (or counts to) zero
    """
    values = list(values)
    if expected_size is None:
        expected_size = len(values)
    if false_positive_probability is None:
        false_positive_probability = settings.BLOOM_FALSE_POSITIVE_RATE

    # Constructing zero() validates the parameters before any work is sharded
    monoid = BloomFilterUnionMonoid(expected_size, false_positive_probability)
    monoid.zero()
    return _fit_sketch(monoid, lambda bf, v: bf.add(v), values, partitions, workers)
