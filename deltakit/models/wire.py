"""
Wire models for sketches, filters and distributions

Field names are camelCase on the wire (expectedSize, sumOfSquares, ...) and
distributions carry a "type" discriminator. Bloom filter bits travel as
base64 with trailing zero bytes trimmed.
"""
import base64
import logging
from typing import Annotated, Any, Callable, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

from deltakit.core.sketches.bloom_filter import BloomFilter
from deltakit.core.sketches.categorical import (
    CategoricalDistribution,
    CategoricalSketch,
    EmpiricalDistribution,
    EmpiricalSketch,
    stable_items,
)
from deltakit.core.sketches.gaussian import GaussianDistribution, GaussianSketch
from deltakit.core.sketches.uniform import UniformDistribution, UniformSketch
from deltakit.errors import DecodingError, InvalidArgumentError

logger = logging.getLogger(__name__)


class WireModel(BaseModel):
    """Base model: camelCase aliases, snake_case attributes"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CategoryCount(WireModel):
    """One {category, count} entry"""

    category: Any
    count: int = Field(..., ge=0)


class BloomFilterModel(WireModel):
    """Bloom filter parameters and bit data"""

    expected_size: int = Field(..., gt=0)
    false_positive_probability: float
    bits: bytes = b""

    @field_validator("bits", mode="before")
    @classmethod
    def decode_bits(cls, v):
        """Accept base64 text from JSON"""
        if isinstance(v, str):
            return base64.b64decode(v, validate=True)
        return v

    @field_serializer("bits")
    def encode_bits(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")


class GaussianSketchModel(WireModel):
    count: int = Field(..., ge=0)
    sum: float
    sum_of_squares: float


class CategoricalSketchModel(WireModel):
    categories: List[CategoryCount] = Field(default_factory=list)


class UniformSketchModel(WireModel):
    categories: List[Any] = Field(default_factory=list)


class GaussianDistributionModel(WireModel):
    type: Literal["gaussian"] = "gaussian"
    mu: float
    sigma: float


class CategoricalDistributionModel(WireModel):
    type: Literal["categorical"] = "categorical"
    categories: List[CategoryCount]


class EmpiricalDistributionModel(WireModel):
    type: Literal["empirical"] = "empirical"
    categories: List[CategoryCount]


class UniformDistributionModel(WireModel):
    type: Literal["uniform"] = "uniform"
    categories: List[Any]


DistributionModel = Annotated[
    Union[
        GaussianDistributionModel,
        CategoricalDistributionModel,
        EmpiricalDistributionModel,
        UniformDistributionModel,
    ],
    Field(discriminator="type"),
]

_distribution_adapter = TypeAdapter(DistributionModel)

# Storage kinds, one per encodable shape
BLOOM_FILTER = "bloom_filter"
GAUSSIAN_SKETCH = "gaussian_sketch"
CATEGORICAL_SKETCH = "categorical_sketch"
EMPIRICAL_SKETCH = "empirical_sketch"
UNIFORM_SKETCH = "uniform_sketch"
DISTRIBUTION = "distribution"


def kind_of(obj) -> str:
    """Storage kind of an encodable object"""
    if isinstance(obj, BloomFilter):
        return BLOOM_FILTER
    if isinstance(obj, GaussianSketch):
        return GAUSSIAN_SKETCH
    if isinstance(obj, EmpiricalSketch):
        return EMPIRICAL_SKETCH
    if isinstance(obj, CategoricalSketch):
        return CATEGORICAL_SKETCH
    if isinstance(obj, UniformSketch):
        return UNIFORM_SKETCH
    if isinstance(obj, (GaussianDistribution, CategoricalDistribution, UniformDistribution)):
        return DISTRIBUTION
    raise InvalidArgumentError(f"cannot encode {type(obj).__name__}")


def _counts(pairs) -> List[CategoryCount]:
    return [CategoryCount(category=c, count=n) for c, n in pairs]


def to_model(obj) -> WireModel:
    """
    Wire model for a sketch, filter or distribution

    Raises:
        InvalidArgumentError: For any other type
    """
    kind = kind_of(obj)
    if kind == BLOOM_FILTER:
        return BloomFilterModel(
            expected_size=obj.expected_size,
            false_positive_probability=obj.false_positive_probability,
            bits=obj.to_bytes().rstrip(b"\x00"),
        )
    if kind == GAUSSIAN_SKETCH:
        return GaussianSketchModel(count=obj.count, sum=obj.sum, sum_of_squares=obj.sum_of_squares)
    if kind in (CATEGORICAL_SKETCH, EMPIRICAL_SKETCH):
        return CategoricalSketchModel(categories=_counts(stable_items(obj.categories())))
    if kind == UNIFORM_SKETCH:
        distinct = dict.fromkeys(obj.categories(), 1)
        return UniformSketchModel(categories=[c for c, _ in stable_items(distinct)])

    if isinstance(obj, GaussianDistribution):
        return GaussianDistributionModel(mu=obj.mu, sigma=obj.sigma)
    if isinstance(obj, EmpiricalDistribution):
        return EmpiricalDistributionModel(categories=_counts(obj.categories()))
    if isinstance(obj, CategoricalDistribution):
        return CategoricalDistributionModel(categories=_counts(obj.categories()))
    return UniformDistributionModel(categories=list(obj.categories()))


def encode(obj) -> dict:
    """JSON-compatible dict with wire field names"""
    return to_model(obj).model_dump(by_alias=True, mode="json")


def dumps(obj) -> str:
    """JSON text with wire field names"""
    return to_model(obj).model_dump_json(by_alias=True)


def _freeze(value):
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, dict):
        return tuple((k, _freeze(v)) for k, v in value.items())
    return value


class SketchDecoder:
    """
    Decodes wire payloads back into sketches, filters and distributions

    Payloads may be dicts (already parsed) or JSON text/bytes.

    Without a category_type, categories are kept as the raw JSON values with
    lists turned into tuples so they stay hashable. The first time that
    happens the decoder logs a warning and calls on_fallback, once per
    decoder instance.

    Example:
        decoder = SketchDecoder(category_type=int)
        dist = decoder.decode_distribution('{"type": "uniform", "categories": [1, 2]}')
    """

    def __init__(
        self,
        category_type: Optional[Any] = None,
        on_fallback: Optional[Callable[[str], None]] = None,
    ):
        self.category_type = category_type
        self.on_fallback = on_fallback
        self._adapter = TypeAdapter(category_type) if category_type is not None else None
        self._warned = False

    def _validate(self, model_class, payload):
        try:
            if isinstance(model_class, TypeAdapter):
                if isinstance(payload, (str, bytes, bytearray)):
                    return model_class.validate_json(payload)
                return model_class.validate_python(payload)
            if isinstance(payload, (str, bytes, bytearray)):
                return model_class.model_validate_json(payload)
            return model_class.model_validate(payload)
        except ValidationError as e:
            raise DecodingError(f"malformed payload: {e}") from e

    def _warn_fallback(self) -> None:
        if self._warned:
            return
        self._warned = True
        message = "No category type given; decoding categories as raw JSON values"
        logger.warning(message)
        if self.on_fallback is not None:
            self.on_fallback(message)

    def category(self, raw):
        """Convert one raw category value"""
        if self._adapter is None:
            self._warn_fallback()
            return _freeze(raw)
        try:
            return self._adapter.validate_python(raw)
        except ValidationError as e:
            raise DecodingError(f"invalid category {raw!r}: {e}") from e

    def _weights(self, entries: List[CategoryCount]) -> dict:
        weights = {}
        for entry in entries:
            key = self.category(entry.category)
            weights[key] = weights.get(key, 0) + entry.count
        return weights

    # =====================
    # Sketches and filters
    # =====================

    def decode_bloom_filter(self, payload) -> BloomFilter:
        """
        Raises:
            DecodingError: If the payload is malformed or bits is not base64
            CapacityError: If the bits do not fit the derived bit count
        """
        model = self._validate(BloomFilterModel, payload)
        return BloomFilter(model.expected_size, model.false_positive_probability, model.bits)

    def decode_gaussian_sketch(self, payload) -> GaussianSketch:
        model = self._validate(GaussianSketchModel, payload)
        return GaussianSketch(model.sum, model.sum_of_squares, model.count)

    def decode_categorical_sketch(self, payload) -> CategoricalSketch:
        model = self._validate(CategoricalSketchModel, payload)
        return CategoricalSketch(self._weights(model.categories))

    def decode_empirical_sketch(self, payload) -> EmpiricalSketch:
        model = self._validate(CategoricalSketchModel, payload)
        return EmpiricalSketch(self._weights(model.categories))

    def decode_uniform_sketch(self, payload) -> UniformSketch:
        model = self._validate(UniformSketchModel, payload)
        return UniformSketch(self.category(c) for c in model.categories)

    # =====================
    # Distributions
    # =====================

    def decode_gaussian_distribution(self, payload) -> GaussianDistribution:
        model = self._validate(GaussianDistributionModel, payload)
        return GaussianDistribution(model.mu, model.sigma)

    def decode_categorical_distribution(self, payload) -> CategoricalDistribution:
        model = self._validate(CategoricalDistributionModel, payload)
        return CategoricalDistribution(self._weights(model.categories))

    def decode_empirical_distribution(self, payload) -> EmpiricalDistribution:
        model = self._validate(EmpiricalDistributionModel, payload)
        return EmpiricalDistribution(self._weights(model.categories))

    def decode_uniform_distribution(self, payload) -> UniformDistribution:
        model = self._validate(UniformDistributionModel, payload)
        return UniformDistribution(self.category(c) for c in model.categories)

    def decode_distribution(self, payload):
        """
        Decode any distribution, dispatching on its "type" field

        Raises:
            DecodingError: If type is missing or unknown, or the payload is malformed
        """
        model = self._validate(_distribution_adapter, payload)
        if isinstance(model, GaussianDistributionModel):
            return GaussianDistribution(model.mu, model.sigma)
        if isinstance(model, UniformDistributionModel):
            return UniformDistribution(self.category(c) for c in model.categories)
        if isinstance(model, EmpiricalDistributionModel):
            return EmpiricalDistribution(self._weights(model.categories))
        return CategoricalDistribution(self._weights(model.categories))

    def decode(self, kind: str, payload):
        """
        Decode a payload of the given storage kind

        Raises:
            InvalidArgumentError: If kind is unknown
        """
        decoders = {
            BLOOM_FILTER: self.decode_bloom_filter,
            GAUSSIAN_SKETCH: self.decode_gaussian_sketch,
            CATEGORICAL_SKETCH: self.decode_categorical_sketch,
            EMPIRICAL_SKETCH: self.decode_empirical_sketch,
            UNIFORM_SKETCH: self.decode_uniform_sketch,
            DISTRIBUTION: self.decode_distribution,
        }
        if kind not in decoders:
            raise InvalidArgumentError(f"unknown kind {kind!r}")
        return decoders[kind](payload)
