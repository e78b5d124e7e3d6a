"""
Gaussian distribution fit from a mergeable moment sketch

The sketch keeps (sum, sum_of_squares, count). Those are plain sums, so
merging two sketches is field-wise addition and any partition of the input
merges back to the same sketch (exactly, whenever the float sums are exact).
"""
import math
import sys
from typing import Iterable

from deltakit.errors import (
    IncompatibleOperandsError,
    InsufficientDataError,
    InvalidArgumentError,
    InvalidParameterError,
    NoVarianceError,
    require,
)

SQRT_2 = math.sqrt(2.0)
SQRT_2PI = math.sqrt(2.0 * math.pi)


class GaussianSketch:
    """
    Running sum / sum-of-squares accumulator

    Not synchronized: give each worker its own sketch and merge afterwards.

    Example:
        sketch = GaussianSketch()
        sketch.observe_all([1.0, 2.0, 3.0])
        sketch.to_distribution()  # mu=2.0, sigma=sqrt(2/3)
    """

    def __init__(self, sum: float = 0.0, sum_of_squares: float = 0.0, count: int = 0):
        if count < 0:
            raise InvalidArgumentError("count must not be negative")
        self.sum = float(sum)
        self.sum_of_squares = float(sum_of_squares)
        self.count = int(count)

    def observe(self, value: float) -> None:
        """Add a single value"""
        value = float(require(value, "value"))
        self.sum += value
        self.sum_of_squares += value * value
        self.count += 1

    def observe_all(self, values: Iterable[float]) -> None:
        """Add multiple values"""
        for value in values:
            self.observe(value)

    def merge(self, other: "GaussianSketch") -> None:
        """
        Add another sketch's moments to this one (in place)

        Raises:
            IncompatibleOperandsError: If other is not a GaussianSketch
        """
        if not isinstance(other, GaussianSketch):
            raise IncompatibleOperandsError(
                f"cannot merge GaussianSketch with {type(other).__name__}"
            )
        self.sum += other.sum
        self.sum_of_squares += other.sum_of_squares
        self.count += other.count

    def copy(self) -> "GaussianSketch":
        return GaussianSketch(self.sum, self.sum_of_squares, self.count)

    @property
    def mean(self) -> float:
        """Sample mean (0.0 when empty)"""
        return self.sum / self.count if self.count > 0 else 0.0

    @property
    def variance(self) -> float:
        """Population variance E[x^2] - E[x]^2 (0.0 with fewer than 2 values)"""
        if self.count < 2:
            return 0.0
        mean = self.mean
        return max(0.0, self.sum_of_squares / self.count - mean * mean)

    def to_distribution(self) -> "GaussianDistribution":
        """
        Fit a Gaussian distribution to the observations so far

        Raises:
            InsufficientDataError: With fewer than 2 observations
            NoVarianceError: If all observations are equal
        """
        return GaussianDistribution.from_sketch(self)

    def __eq__(self, other) -> bool:
        if not isinstance(other, GaussianSketch):
            return NotImplemented
        return (
            self.sum == other.sum
            and self.sum_of_squares == other.sum_of_squares
            and self.count == other.count
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"GaussianSketch(sum={self.sum!r}, sum_of_squares={self.sum_of_squares!r}, "
            f"count={self.count})"
        )


class GaussianDistribution:
    """
    Gaussian ("normal") distribution with mean mu and standard deviation sigma

    Immutable and safe to share between threads.
    """

    __slots__ = ("_mu", "_sigma")

    def __init__(self, mu: float, sigma: float):
        """
        Args:
            mu: Mean
            sigma: Standard deviation, strictly positive

        Raises:
            InvalidParameterError: If sigma is not a positive finite number
        """
        if not math.isfinite(mu):
            raise InvalidParameterError("mu must be finite")
        if sigma == 0.0:
            raise InvalidParameterError("sigma must not be zero")
        if not sigma > 0.0 or not math.isfinite(sigma):
            raise InvalidParameterError("sigma must be positive and finite")
        self._mu = float(mu)
        self._sigma = float(sigma)

    @classmethod
    def of(cls, mu: float, sigma: float) -> "GaussianDistribution":
        return cls(mu, sigma)

    @classmethod
    def from_sketch(cls, sketch: GaussianSketch) -> "GaussianDistribution":
        """
        Maximum likelihood fit from a sketch

        mu = sum / n
        sigma = sqrt(sum_of_squares / n - mu^2)

        Raises:
            InsufficientDataError: If the sketch holds fewer than 2 values
            NoVarianceError: If the values are all the same
        """
        require(sketch, "sketch")
        if sketch.count < 2:
            raise InsufficientDataError("insufficient data")
        mu = sketch.sum / sketch.count
        mean_square = sketch.sum_of_squares / sketch.count
        variance = mean_square - mu * mu
        # Round-off leaves a zero variance within a few ulps of the mean square
        if variance <= 4.0 * sys.float_info.epsilon * mean_square:
            raise NoVarianceError("no variance")
        return cls(mu, math.sqrt(variance))

    @classmethod
    def fit(cls, values: Iterable[float]) -> "GaussianDistribution":
        """Fit to a stream of values"""
        sketch = GaussianSketch()
        sketch.observe_all(require(values, "values"))
        return cls.from_sketch(sketch)

    @property
    def mu(self) -> float:
        return self._mu

    @property
    def sigma(self) -> float:
        return self._sigma

    def sample(self, rng) -> float:
        """
        Draw a value

        Args:
            rng: random.Random-like generator (anything with gauss)
        """
        return require(rng, "rng").gauss(self._mu, self._sigma)

    def pdf(self, x: float) -> float:
        """Probability density at x"""
        z = (x - self._mu) / self._sigma
        return math.exp(-0.5 * z * z) / (self._sigma * SQRT_2PI)

    def cdf(self, x: float) -> float:
        """P(X <= x)"""
        return 0.5 * (1.0 + math.erf((x - self._mu) / (self._sigma * SQRT_2)))

    def __eq__(self, other) -> bool:
        if not isinstance(other, GaussianDistribution):
            return NotImplemented
        return self._mu == other._mu and self._sigma == other._sigma

    def __hash__(self) -> int:
        return hash((self._mu, self._sigma))

    def __repr__(self) -> str:
        return f"GaussianDistribution(mu={self._mu!r}, sigma={self._sigma!r})"
