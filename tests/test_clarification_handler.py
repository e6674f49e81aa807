import pytest
from conftest import FakeClassifier

from homeops.models.core import ActivityType, ClarificationKind, ClarificationReply, ClassificationResult
from homeops.services.alias_store import AliasStore
from homeops.services.clarification_handler import ClarificationHandler, source_token_key
from homeops.utils.config import ClarificationConfig

PROMPT = 'Did you mean washing-up?'


def laundry(confidence):
    return ClassificationResult(type=ActivityType.CHORE, activity='laundry', effort='medium', confidence=confidence)


def make_handler(store, classifier=None, **kwargs):
    return ClarificationHandler(AliasStore(store),
                                classifier or FakeClassifier(laundry(0.85)),
                                ClarificationConfig(correction_confidence=0.70),
                                **kwargs)


def reply(text, prompt=PROMPT, source_text=None):
    return ClarificationReply(scope_id='c1', original_prompt_text=prompt, reply_text=text, source_text=source_text)


def test_affirmative_reply_confirms_and_creates_alias(store):
    outcome = make_handler(store).handle(reply('yes'))

    assert outcome.handled is True
    assert outcome.kind == ClarificationKind.CONFIRMED
    assert outcome.activity == 'washing-up'

    [entry] = AliasStore(store).get_aliases_for_scope('c1')
    assert (entry.alias_key, entry.canonical_activity, entry.confirmations) == ('washing-up', 'washing-up', 0)


def test_repeated_confirmation_increments_existing_alias(store):
    AliasStore(store).put_alias('c1', 'dishes', 'washing-up')
    handler = make_handler(store)

    handler.handle(reply('Yes!'))
    handler.handle(reply('  yep. '))

    [entry] = AliasStore(store).get_aliases_for_scope('c1')
    assert entry.alias_key == 'dishes'
    assert entry.confirmations == 2


def test_confident_correction_writes_alias(store):
    classifier = FakeClassifier(laundry(0.85))

    outcome = make_handler(store, classifier).handle(reply('no, I meant laundry'))

    assert outcome.handled is True
    assert outcome.kind == ClarificationKind.CORRECTED
    assert outcome.activity == 'laundry'
    assert classifier.calls == ['i meant laundry']
    assert [e.canonical_activity for e in AliasStore(store).get_aliases_for_scope('c1')] == ['laundry']


def test_correction_overwrites_previous_mapping(store):
    AliasStore(store).put_alias('c1', 'laundry', 'something else')

    make_handler(store).handle(reply('nope laundry'))

    [entry] = AliasStore(store).get_aliases_for_scope('c1')
    assert entry.canonical_activity == 'laundry'


def test_low_confidence_correction_leaves_vocabulary_alone(store):
    outcome = make_handler(store, FakeClassifier(laundry(0.69))).handle(reply('no, I meant laundry'))

    assert outcome.handled is False
    assert outcome.kind == ClarificationKind.LOW_CONFIDENCE
    assert AliasStore(store).get_aliases_for_scope('c1') == []


def test_classifier_fallback_counts_as_low_confidence(store):
    none = ClassificationResult(type=ActivityType.NONE, activity='', effort='low', confidence=0.0)

    outcome = make_handler(store, FakeClassifier(none)).handle(reply('no, something'))

    assert outcome.kind == ClarificationKind.LOW_CONFIDENCE


@pytest.mark.parametrize('text', ['no', 'No.', 'nope!', 'nah'])
def test_bare_negation_is_rejected_without_remainder(store, text):
    classifier = FakeClassifier()

    outcome = make_handler(store, classifier).handle(reply(text))

    assert outcome.kind == ClarificationKind.REJECTED_NO_REMAINDER
    assert outcome.handled is False
    assert classifier.calls == []


@pytest.mark.parametrize('text', ['maybe', 'yes I think so', 'nothing much', 'now it is done'])
def test_other_replies_are_ambiguous(store, text):
    classifier = FakeClassifier()

    outcome = make_handler(store, classifier).handle(reply(text))

    assert outcome.kind == ClarificationKind.AMBIGUOUS
    assert classifier.calls == []
    assert AliasStore(store).get_aliases_for_scope('c1') == []


def test_reply_to_other_message_is_not_clarification(store):
    classifier = FakeClassifier()

    outcome = make_handler(store, classifier).handle(reply('yes', prompt='Noted ✓'))

    assert outcome.kind == ClarificationKind.NOT_CLARIFICATION
    assert outcome.handled is False
    assert classifier.calls == []


def test_source_token_key_strategy(store):
    handler = make_handler(store, key_strategy=source_token_key)

    handler.handle(reply('yes', source_text='Dishes'))

    [entry] = AliasStore(store).get_aliases_for_scope('c1')
    assert (entry.alias_key, entry.canonical_activity) == ('dishes', 'washing-up')


def test_correction_is_classified_with_scope_vocabulary(store):
    AliasStore(store).put_alias('c1', 'dishes', 'washing-up')
    classifier = FakeClassifier(laundry(0.85))

    make_handler(store, classifier).handle(reply('no, the dishes'))

    assert classifier.vocabularies == [{'dishes': 'washing-up'}]
