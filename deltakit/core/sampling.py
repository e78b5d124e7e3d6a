"""
Samplers bound to a source of random number generators
"""
import random
import threading
from typing import Callable, Generic, List, Optional, TypeVar

from deltakit.errors import InvalidArgumentError, require

T = TypeVar('T')


class DistributionSampler(Generic[T]):
    """
    Draws values from a distribution without passing an rng around

    The distribution can be anything with a ``sample(rng)`` method. The rng
    is fetched from ``rng_supplier`` on every draw.

    Example:
        dist = CategoricalDistribution({"heads": 1, "tails": 1})
        flip = DistributionSampler.of_thread_local(dist)
        print(flip())
    """

    def __init__(self, distribution, rng_supplier: Callable[[], random.Random]):
        self.distribution = require(distribution, "distribution")
        self.rng_supplier = require(rng_supplier, "rng_supplier")

    @classmethod
    def of_instance(cls, distribution, rng: random.Random) -> 'DistributionSampler[T]':
        """Sampler that always draws from ``rng``"""
        require(rng, "rng")
        return cls(distribution, lambda: rng)

    @classmethod
    def of_thread_local(
        cls, distribution, seed: Optional[int] = None
    ) -> 'DistributionSampler[T]':
        """
        Sampler with one generator per thread

        Args:
            distribution: Distribution to draw from
            seed: Optional base seed; each thread's generator is seeded with
                ``seed`` plus a per-sampler thread counter so runs repeat

        Returns:
            Sampler safe to share between threads
        """
        local = threading.local()
        lock = threading.Lock()
        counter = [0]

        def supplier() -> random.Random:
            rng = getattr(local, "rng", None)
            if rng is None:
                if seed is None:
                    rng = random.Random()
                else:
                    with lock:
                        offset = counter[0]
                        counter[0] += 1
                    rng = random.Random(seed + offset)
                local.rng = rng
            return rng

        return cls(distribution, supplier)

    def sample(self) -> T:
        return self.distribution.sample(self.rng_supplier())

    def samples(self, n: int) -> List[T]:
        """Draw ``n`` values"""
        if n < 0:
            raise InvalidArgumentError(f"n must be non-negative, got {n}")
        rng = self.rng_supplier()
        return [self.distribution.sample(rng) for _ in range(n)]

    def __call__(self) -> T:
        return self.sample()

    def __repr__(self) -> str:
        return f"DistributionSampler({self.distribution!r})"
