"""
Tests for distribution samplers
"""
import random
import threading

import pytest

from deltakit.core.sampling import DistributionSampler
from deltakit.core.sketches.categorical import CategoricalDistribution
from deltakit.core.sketches.gaussian import GaussianDistribution
from deltakit.errors import InvalidArgumentError, MissingValueError


@pytest.fixture
def coin():
    return CategoricalDistribution({"heads": 1, "tails": 1})


class TestDistributionSampler:
    """Test binding distributions to generators"""

    def test_of_instance_matches_direct_sampling(self, coin):
        sampler = DistributionSampler.of_instance(coin, random.Random(5))
        direct = random.Random(5)

        assert [sampler() for _ in range(20)] == [coin.sample(direct) for _ in range(20)]

    def test_samples(self, coin):
        sampler = DistributionSampler.of_instance(coin, random.Random(1))
        draws = sampler.samples(50)

        assert len(draws) == 50
        assert set(draws) <= {"heads", "tails"}

    def test_samples_negative(self, coin):
        with pytest.raises(InvalidArgumentError):
            DistributionSampler.of_thread_local(coin).samples(-1)

    def test_works_with_gaussian(self):
        sampler = DistributionSampler.of_instance(GaussianDistribution(0.0, 1.0), random.Random(2))
        assert isinstance(sampler.sample(), float)

    def test_thread_local_seed_repeats(self, coin):
        first = DistributionSampler.of_thread_local(coin, seed=11).samples(25)
        second = DistributionSampler.of_thread_local(coin, seed=11).samples(25)
        assert first == second

    def test_thread_local_generator_per_thread(self, coin):
        sampler = DistributionSampler.of_thread_local(coin)
        generators = []
        lock = threading.Lock()

        def worker():
            rng = sampler.rng_supplier()
            assert sampler.rng_supplier() is rng
            sampler.sample()
            with lock:
                generators.append(rng)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(generators) == 4
        assert len({id(rng) for rng in generators}) == 4

    def test_missing_arguments(self, coin):
        with pytest.raises(MissingValueError):
            DistributionSampler(None, random.Random)
        with pytest.raises(MissingValueError):
            DistributionSampler(coin, None)
        with pytest.raises(MissingValueError):
            DistributionSampler.of_instance(coin, None)
