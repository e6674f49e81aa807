from datetime import datetime, timezone

import pytest

from homeops.models.core import ActivityType, ClassificationResult
from homeops.services.event_pipeline import MessageSender
from homeops.utils.kv_store import InMemoryStore

# Monday 2024-07-01, 12:00 in Stockholm (CEST)
MIDDAY_UTC = datetime(2024, 7, 1, 10, 0, tzinfo=timezone.utc)


class FakeClassifier:
    """Returns a fixed result and records every text it was asked about."""

    def __init__(self, result=None):
        self.result = result or ClassificationResult(type=ActivityType.CHORE, activity='laundry', effort='medium', confidence=0.9)
        self.calls = []
        self.vocabularies = []

    def classify(self, text, aliases=None):
        self.calls.append(text)
        self.vocabularies.append(aliases)
        return self.result


class FakeSender(MessageSender):

    def __init__(self, ok=True):
        self.ok = ok
        self.sent = []

    def send(self, destination, conversation_id, text, thread_ref=None):
        self.sent.append((destination, conversation_id, text, thread_ref))
        return self.ok


class ExplodingStore(InMemoryStore):
    """Fails the test on any store access."""

    def get_item(self, pk, sk):
        raise AssertionError(f'unexpected get_item {pk}/{sk}')

    def query(self, pk, **kwargs):
        raise AssertionError(f'unexpected query {pk}')


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def midday():
    return MIDDAY_UTC


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def sender():
    return FakeSender()
