"""
Monoid implementations for mergeable sketches

Inspired by Twitter Algebird
"""
from deltakit.core.monoids.bloom_monoid import BloomFilterMonoid, BloomFilterUnionMonoid
from deltakit.core.monoids.categorical_monoid import (
    CategoricalSketchMonoid,
    EmpiricalSketchMonoid,
    UniformSketchMonoid,
)
from deltakit.core.monoids.moments_monoid import GaussianSketchMonoid

__all__ = [
    'BloomFilterMonoid',
    'BloomFilterUnionMonoid',
    'CategoricalSketchMonoid',
    'EmpiricalSketchMonoid',
    'UniformSketchMonoid',
    'GaussianSketchMonoid',
]
