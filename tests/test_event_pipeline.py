from datetime import timedelta

import pytest
from conftest import MIDDAY_UTC, FakeClassifier, FakeSender

from homeops.models.core import (ActivityType, ClarificationKind, ClassificationResult, ContentType, ConversationKind, Destination,
                                 IncomingMessage)
from homeops.services.activity_store import ActivityStore
from homeops.services.ema_tracker import EmaTracker
from homeops.services.event_pipeline import ConfigurationError, MessageSender, create_event_processor
from homeops.services.opt_in_registry import OptInRegistry
from homeops.services.pattern_tracker import PatternTracker
from homeops.services.response_counter import ResponseCounter
from homeops.utils.kv_store import InMemoryStore, StoreError


class FailingStore(InMemoryStore):
    """Raises StoreError on writes to partitions with the given prefixes."""

    def __init__(self, *prefixes):
        super().__init__()
        self.prefixes = prefixes

    def _check(self, pk):
        if pk.startswith(self.prefixes):
            raise StoreError(f'write to {pk} failed')

    def put_item(self, item, condition=None):
        self._check(item['pk'])
        super().put_item(item, condition)

    def increment(self, pk, sk, attribute, amount=1, set_attributes=None):
        self._check(pk)
        return super().increment(pk, sk, attribute, amount, set_attributes)


def message(text='put a wash on', kind=ConversationKind.GROUP, reply_to=None, message_id='m1', at=MIDDAY_UTC):
    return IncomingMessage(conversation_id='c1',
                           conversation_kind=kind,
                           message_id=message_id,
                           subject_id='u1',
                           text=text,
                           occurred_at=at,
                           reply_to_text=reply_to)


def make_processor(store, classifier=None, sender=None):
    return create_event_processor(store=store, classifier=classifier or FakeClassifier(), sender=sender or FakeSender())


def test_high_confidence_chore_is_saved_learned_and_acknowledged(store, classifier, sender):
    result = make_processor(store, classifier, sender).process_message(message())

    assert result.sent is True
    assert result.destination == Destination.GROUP
    assert sender.sent == [(Destination.GROUP, 'c1', 'Noted ✓', 'm1')]
    assert [a.activity for a in ActivityStore(store).recent_activities('c1')] == ['laundry']
    assert EmaTracker(store).get_effort('u1', 'laundry').sample_count == 1
    assert PatternTracker(store).get_habit('c1', 'u1', 'laundry').total_count == 1
    assert ResponseCounter(store).get('c1', '2024-07-01').count == 1


def test_medium_confidence_asks_for_clarification(store, sender):
    classifier = FakeClassifier(ClassificationResult(type=ActivityType.CHORE, activity='laundry', effort='low', confidence=0.6))

    make_processor(store, classifier, sender).process_message(message())

    assert sender.sent[0][2] == 'Did you mean laundry?'


def test_none_type_is_neither_saved_nor_answered(store, sender):
    classifier = FakeClassifier(ClassificationResult(type=ActivityType.NONE, activity='', effort='low', confidence=0.0))

    result = make_processor(store, classifier, sender).process_message(message('what is for dinner'))

    assert result.decision.reason == 'none'
    assert sender.sent == []
    assert ActivityStore(store).recent_activities('c1') == []


def test_low_confidence_is_saved_but_silent(store, sender):
    classifier = FakeClassifier(ClassificationResult(type=ActivityType.CHORE, activity='laundry', effort='low', confidence=0.3))

    result = make_processor(store, classifier, sender).process_message(message())

    assert result.decision.reason == 'low_confidence'
    assert sender.sent == []
    assert len(ActivityStore(store).recent_activities('c1')) == 1


def test_failed_send_is_not_counted(store):
    result = make_processor(store, sender=FakeSender(ok=False)).process_message(message())

    assert result.sent is False
    assert ResponseCounter(store).get('c1', '2024-07-01').count == 0


def test_sent_response_starts_cooldown(store, sender):
    processor = make_processor(store, sender=sender)

    processor.process_message(message())
    second = processor.process_message(message(message_id='m2', at=MIDDAY_UTC + timedelta(minutes=5)))

    assert second.decision.reason == 'cooldown'
    assert len(sender.sent) == 1


def test_tracker_failures_do_not_block_the_response(sender):
    store = FailingStore('EMA#', 'PATTERN#')

    result = make_processor(store, sender=sender).process_message(message())

    assert result.sent is True
    assert len(ActivityStore(store).recent_activities('c1')) == 1


def test_activity_persistence_failure_propagates(sender):
    store = FailingStore('ACTIVITY#')

    with pytest.raises(StoreError):
        make_processor(store, sender=sender).process_message(message())
    assert sender.sent == []


def test_redelivered_message_is_stored_once(store):
    processor = make_processor(store)

    processor.process_message(message())
    processor.process_message(message())

    assert len(ActivityStore(store).recent_activities('c1')) == 1


def test_confirmed_clarification_preempts_classification(store, classifier, sender):
    result = make_processor(store, classifier, sender).process_message(message('yes', reply_to='Did you mean washing-up?'))

    assert result.clarification.kind == ClarificationKind.CONFIRMED
    assert result.classification is None
    assert classifier.calls == []
    assert sender.sent == []


def test_unrelated_reply_falls_through_to_classification(store, classifier):
    result = make_processor(store, classifier).process_message(message('put a wash on', reply_to='Noted ✓'))

    assert result.clarification is None
    assert classifier.calls == ['put a wash on']


def test_aliases_are_resolved_before_classification(store, classifier):
    make_processor(store, classifier).process_message(message('did the dishes'))

    assert classifier.calls == ['washing-up']


def test_private_conversation_replies_privately(store, sender):
    result = make_processor(store, sender=sender).process_message(message(kind=ConversationKind.PRIVATE))

    assert result.destination == Destination.PRIVATE
    assert sender.sent[0][0] == Destination.PRIVATE


@pytest.mark.parametrize('missing', ['classifier', 'sender'])
def test_missing_collaborator_is_a_configuration_error(store, missing):
    processor = make_processor(store)
    setattr(processor, missing, None)

    with pytest.raises(ConfigurationError):
        processor.process_message(message())


def test_ignore_signal_feeds_ignore_rate(store):
    processor = make_processor(store)

    processor.observe_ignore_signal('u1', True)

    assert EmaTracker(store).get_ignore_rate('u1').value == 1.0


def test_adaptation_hint_goes_to_registered_private_conversation(store, sender):
    processor = make_processor(store, sender=sender)
    processor.record_opt_in('u1', 'p-u1')

    destination, sent = processor.deliver(message(), ContentType.ADAPTATION_HINT, 'Mornings seem to suit you')

    assert (destination, sent) == (Destination.PRIVATE, True)
    assert sender.sent == [(Destination.PRIVATE, 'p-u1', 'Mornings seem to suit you', None)]
    assert OptInRegistry(store).get_private_conversation('u1') == 'p-u1'
    assert ResponseCounter(store).get('c1', '2024-07-01').count == 1


def test_adaptation_hint_without_opt_in_is_dropped(store, sender):
    destination, sent = make_processor(store, sender=sender).deliver(message(), ContentType.ADAPTATION_HINT, 'hint')

    assert (destination, sent) == (Destination.NONE, False)
    assert sender.sent == []


def test_opted_in_without_private_conversation_is_not_sent(store, sender):
    store.put_item({'pk': 'OPTIN#u1', 'sk': 'STATUS', 'opted_in': True})

    destination, sent = make_processor(store, sender=sender).deliver(message(), ContentType.ADAPTATION_HINT, 'hint')

    assert (destination, sent) == (Destination.PRIVATE, False)
    assert sender.sent == []


def test_private_conversation_keeps_its_own_id(store, sender):
    processor = make_processor(store, sender=sender)

    processor.deliver(message(kind=ConversationKind.PRIVATE), ContentType.ADAPTATION_HINT, 'hint')

    assert sender.sent == [(Destination.PRIVATE, 'c1', 'hint', 'm1')]


def test_query_result_is_answered_in_the_group(store, sender):
    processor = make_processor(store, sender=sender)
    processor.record_opt_in('u1', 'p-u1')

    destination, sent = processor.deliver(message('when was laundry last done?'), ContentType.QUERY_RESULT, 'Yesterday')

    assert (destination, sent) == (Destination.GROUP, True)
    assert sender.sent == [(Destination.GROUP, 'c1', 'Yesterday', 'm1')]


def test_sender_must_implement_send():

    class Incomplete(MessageSender):
        pass

    with pytest.raises(TypeError):
        Incomplete()
