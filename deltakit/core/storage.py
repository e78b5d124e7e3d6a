"""
Redis storage layer for sketches, Bloom filters and distributions

Workers publish partial sketches under a shared name and a reducer (or the
workers themselves, via merge_into) combines them. Values are stored as the
JSON wire encoding from deltakit.models.wire.
"""
import logging
from typing import Optional

import redis
from redis import Redis

from deltakit.config import settings
from deltakit.errors import IncompatibleOperandsError, require
from deltakit.models.wire import DISTRIBUTION, SketchDecoder, dumps, kind_of

logger = logging.getLogger(__name__)


class RedisSketchStore:
    """
    Redis storage abstraction for mergeable sketches

    Keys are "{prefix}:{kind}:{name}", kind being one of the storage kinds in
    deltakit.models.wire (bloom_filter, categorical_sketch, ...).
    """

    def __init__(
        self,
        redis_client: Optional[Redis] = None,
        decoder: Optional[SketchDecoder] = None,
        key_prefix: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ):
        """
        Initialize Redis storage

        Args:
            redis_client: Optional Redis client (creates new if None)
            decoder: Decoder for loaded payloads (default: no category type)
            key_prefix: Key prefix (default: settings.SKETCH_KEY_PREFIX)
            ttl_seconds: Expiry for saved keys, 0 for none
                (default: settings.SKETCH_TTL_SECONDS)
        """
        if redis_client:
            self.redis = redis_client
        else:
            self.redis = redis.from_url(
                settings.get_redis_url(),
                decode_responses=False,
            )

        self.decoder = decoder or SketchDecoder()
        self.key_prefix = key_prefix if key_prefix is not None else settings.SKETCH_KEY_PREFIX
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.SKETCH_TTL_SECONDS

    def ping(self) -> bool:
        """Check Redis connection"""
        try:
            return self.redis.ping()
        except redis.RedisError:
            return False

    def key(self, name: str, kind: str) -> str:
        return f"{self.key_prefix}:{kind}:{name}"

    def _write(self, client, key: str, obj) -> None:
        client.set(key, dumps(obj), ex=self.ttl_seconds or None)

    def save(self, name: str, obj) -> str:
        """
        Store a sketch, filter or distribution, replacing any previous value

        Returns:
            The Redis key written
        """
        key = self.key(require(name, "name"), kind_of(require(obj, "obj")))
        self._write(self.redis, key, obj)
        logger.debug("Saved %s", key)
        return key

    def load(self, name: str, kind: str):
        """
        Load a stored value

        Returns:
            Decoded object, or None if the key does not exist

        Raises:
            DecodingError: If the stored payload is malformed
        """
        data = self.redis.get(self.key(name, kind))
        if data is None:
            return None
        return self.decoder.decode(kind, data)

    def delete(self, name: str, kind: str) -> bool:
        """Delete a stored value. Returns True if it existed"""
        return bool(self.redis.delete(self.key(name, kind)))

    def merge_into(self, name: str, obj):
        """
        Merge a partial sketch or filter into the stored one

        Runs as a WATCH/MULTI transaction that is retried if another client
        changes the key first, so concurrent workers never lose an update.
        obj itself is not modified.

        Returns:
            The merged value as stored

        Raises:
            IncompatibleOperandsError: For distributions, or a stored value of
                a different shape
        """
        kind = kind_of(require(obj, "obj"))
        if kind == DISTRIBUTION:
            raise IncompatibleOperandsError("distributions cannot be merged")
        key = self.key(require(name, "name"), kind)

        def merge(pipe):
            data = pipe.get(key)
            merged = obj.copy()
            if data is not None:
                stored = self.decoder.decode(kind, data)
                stored.merge(obj)
                merged = stored
            pipe.multi()
            self._write(pipe, key, merged)
            return merged

        merged = self.redis.transaction(merge, key, value_from_callable=True)
        logger.debug("Merged partial into %s", key)
        return merged
