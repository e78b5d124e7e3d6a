"""
Shared fixtures
"""
import random

import pytest
from redis.exceptions import WatchError


class FakePipeline:
    """Pipeline double: reads are immediate, writes queue until execute()"""

    def __init__(self, client):
        self.client = client
        self.queued = []

    def get(self, key):
        return self.client.get(key)

    def multi(self):
        self.queued = []

    def set(self, key, value, ex=None):
        self.queued.append((key, value, ex))

    def execute(self):
        if self.client.interfere is not None:
            interfere, self.client.interfere = self.client.interfere, None
            interfere(self.client)
            raise WatchError("watched key changed")
        for key, value, ex in self.queued:
            self.client.set(key, value, ex=ex)
        return [True] * len(self.queued)


class FakeRedis:
    """
    In-memory stand-in for redis.Redis (bytes responses)

    Set `interfere` to a callable to simulate another client writing between
    WATCH and EXEC: it runs once and the transaction is retried.
    """

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.interfere = None
        self.transactions = 0

    def ping(self):
        return True

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        if isinstance(value, str):
            value = value.encode("utf-8")
        self.data[key] = value
        if ex:
            self.ttls[key] = ex
        else:
            self.ttls.pop(key, None)
        return True

    def delete(self, *keys):
        deleted = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                self.ttls.pop(key, None)
                deleted += 1
        return deleted

    def transaction(self, func, *watches, value_from_callable=False):
        while True:
            self.transactions += 1
            pipe = FakePipeline(self)
            try:
                value = func(pipe)
                results = pipe.execute()
            except WatchError:
                continue
            return value if value_from_callable else results


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def rng():
    """Seeded generator so sampling tests repeat exactly"""
    return random.Random(20240601)
