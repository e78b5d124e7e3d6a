"""
deltakit: mergeable sketches, Bloom filters and fitted distributions
"""
import logging

from deltakit.config import settings
from deltakit.core.aggregations import (
    fit_bloom_filter,
    fit_categorical,
    fit_empirical,
    fit_gaussian,
    fit_uniform,
)
from deltakit.core.sampling import DistributionSampler
from deltakit.core.sketches.bloom_filter import BloomFilter
from deltakit.core.sketches.categorical import (
    CategoricalDistribution,
    CategoricalSketch,
    EmpiricalDistribution,
    EmpiricalSketch,
)
from deltakit.core.sketches.gaussian import GaussianDistribution, GaussianSketch
from deltakit.core.sketches.uniform import UniformDistribution, UniformSketch

__version__ = settings.APP_VERSION

__all__ = [
    'BloomFilter',
    'CategoricalDistribution',
    'CategoricalSketch',
    'EmpiricalDistribution',
    'EmpiricalSketch',
    'UniformDistribution',
    'UniformSketch',
    'GaussianDistribution',
    'GaussianSketch',
    'DistributionSampler',
    'fit_bloom_filter',
    'fit_categorical',
    'fit_empirical',
    'fit_gaussian',
    'fit_uniform',
    'configure_logging',
]


def configure_logging(level=None) -> None:
    """
    Configure root logging for applications using deltakit

    Args:
        level: Log level name or number (default: DEBUG when settings.DEBUG,
            else settings.LOG_LEVEL)
    """
    if level is None:
        level = logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL.upper()

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
