"""
Per-event control flow: resolve, classify, persist, learn, decide, route, send.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..models.core import (ActivityType, ClarificationOutcome, ClarificationReply, ClassificationResult, ClassifiedEvent,
                           ContentType, ConversationKind, Destination, IncomingMessage, PolicyDecision)
from ..utils.config import config
from ..utils.dynamodb_client import DynamoDBStore
from ..utils.household_time import local_date_key
from ..utils.kv_store import KeyValueStore
from ..utils.logging_config import get_logger
from .activity_store import ActivityStore
from .alias_resolver import AliasResolver
from .alias_store import AliasStore
from .channel_router import route
from .clarification_handler import ClarificationHandler
from .classifier import ClassificationService
from .conversation_log import ConversationLog
from .ema_tracker import EmaTracker
from .opt_in_registry import OptInRegistry
from .pattern_tracker import PatternTracker
from .preference_tracker import PreferenceTracker
from .response_counter import ResponseCounter
from .response_policy import ResponsePolicyEngine

logger = get_logger(__name__)


class ConfigurationError(Exception):
    """Raised when a required collaborator is missing; aborts the current event only."""
    pass


class MessageSender(ABC):
    """Outbound transport. Implementations deliver text and report success."""

    @abstractmethod
    def send(self, destination: Destination, conversation_id: str, text: str, thread_ref: Optional[str] = None) -> bool:
        """
        Deliver one message.

        Args:
            destination: GROUP or PRIVATE
            conversation_id: Target conversation; for PRIVATE this is the person's private conversation
            text: Message text
            thread_ref: Message being replied to, if it lives in the target conversation

        Returns:
            True if the transport confirmed delivery
        """


@dataclass
class ProcessingResult:
    clarification: Optional[ClarificationOutcome] = None
    classification: Optional[ClassificationResult] = None
    decision: Optional[PolicyDecision] = None
    destination: Optional[Destination] = None
    sent: bool = False


class EventProcessor:
    """Runs one incoming message through the learning and response core.

    Persisting the classified activity is the only step that must succeed; its
    failure propagates so that the upstream source redelivers the event. Every
    tracker update is best-effort and isolated from the others.
    """

    def __init__(self,
                 resolver: AliasResolver,
                 clarification: ClarificationHandler,
                 activities: ActivityStore,
                 ema: EmaTracker,
                 patterns: PatternTracker,
                 preferences: PreferenceTracker,
                 policy: ResponsePolicyEngine,
                 counter: ResponseCounter,
                 opt_ins: OptInRegistry,
                 classifier=None,
                 sender: Optional[MessageSender] = None):
        self.resolver = resolver
        self.clarification = clarification
        self.activities = activities
        self.ema = ema
        self.patterns = patterns
        self.preferences = preferences
        self.policy = policy
        self.counter = counter
        self.opt_ins = opt_ins
        self.classifier = classifier
        self.sender = sender

    def _best_effort(self, name: str, action: Callable[[], object]) -> None:
        try:
            action()
        except Exception as e:
            logger.error(f'{name} update failed, continuing: {e}')

    def observe_ignore_signal(self, subject_id: str, ignored: bool) -> None:
        """Feed an externally derived ignore signal into the ignore-rate EMA."""
        self._best_effort('Ignore rate', lambda: self.preferences.record_ignore(subject_id, ignored))

    def process_message(self, message: IncomingMessage) -> ProcessingResult:
        """
        Process one incoming message end to end.

        Args:
            message: Message from the upstream event source

        Returns:
            ProcessingResult describing what happened

        Raises:
            ConfigurationError: If the classifier or sender is missing
            StoreError: If the activity could not be persisted
        """
        if self.classifier is None:
            raise ConfigurationError('No classification collaborator configured')
        if self.sender is None:
            raise ConfigurationError('No message sender configured')

        self._best_effort('Interaction frequency',
                          lambda: self.preferences.observe_message(message.subject_id, message.occurred_at))

        if message.reply_to_text:
            outcome = self.clarification.handle(
                ClarificationReply(scope_id=message.conversation_id,
                                   original_prompt_text=message.reply_to_text,
                                   reply_text=message.text))
            logger.info(f'Clarification outcome in {message.conversation_id}: {outcome.kind.value}')
            if outcome.handled:
                self.resolver.invalidate(message.conversation_id)
                return ProcessingResult(clarification=outcome)

        resolution = self.resolver.resolve(message.conversation_id, message.text)
        classification = self.classifier.classify(resolution.resolved_text)

        event = ClassifiedEvent(conversation_id=message.conversation_id,
                                subject_id=message.subject_id,
                                event_type=classification.type,
                                activity_key=classification.activity,
                                confidence=classification.confidence,
                                effort=classification.effort,
                                raw_text=message.text,
                                is_direct_address=message.is_direct_address,
                                occurred_at=message.occurred_at)

        if classification.type == ActivityType.NONE:
            return ProcessingResult(classification=classification, decision=self.policy.evaluate(event))

        self.activities.save_activity(event, message_id=message.message_id)

        self._best_effort('Effort EMA', lambda: self.ema.record_effort(event.subject_id, event.activity_key, event.effort))
        self._best_effort(
            'Pattern habit', lambda: self.patterns.record_occurrence(event.conversation_id, event.subject_id,
                                                                     event.activity_key, event.occurred_at))

        decision = self.policy.evaluate(event)
        result = ProcessingResult(classification=classification, decision=decision)
        if decision.respond:
            result.destination, result.sent = self.deliver(message, decision.content_type, decision.text)
        return result

    def deliver(self, message: IncomingMessage, content_type: ContentType, text: str) -> Tuple[Destination, bool]:
        """
        Route content produced in response to a message and send it.

        Group content is threaded onto the message. Content routed to a
        private destination from a group goes to the person's registered
        private conversation, and is dropped if they have none.

        Args:
            message: The message being answered
            content_type: Kind of content, decides the route
            text: Text to send

        Returns:
            Tuple of (destination, sent)

        Raises:
            ConfigurationError: If no sender is configured
        """
        if self.sender is None:
            raise ConfigurationError('No message sender configured')

        opted_in = content_type == ContentType.ADAPTATION_HINT and self.opt_ins.is_opted_in(message.subject_id)
        destination = route(content_type, opted_in, message.conversation_kind)
        if destination == Destination.NONE:
            return destination, False

        target, thread_ref = message.conversation_id, message.message_id
        if destination == Destination.PRIVATE and message.conversation_kind == ConversationKind.GROUP:
            target, thread_ref = self.opt_ins.get_private_conversation(message.subject_id), None
            if target is None:
                logger.warning(f'No private conversation registered for {message.subject_id}, not sending')
                return destination, False

        try:
            sent = self.sender.send(destination, target, text, thread_ref)
        except Exception as e:
            logger.error(f'Send to {target} failed: {e}')
            sent = False

        if sent:
            self._best_effort(
                'Response counter', lambda: self.counter.record_response(
                    message.conversation_id, local_date_key(message.occurred_at, self.policy.tz_name), message.occurred_at))
        else:
            logger.warning(f'Response to {message.message_id} was not delivered')

        return destination, sent

    def record_opt_in(self, subject_id: str, private_conversation_id: str) -> None:
        """Register that a person accepts private messages in the given conversation."""
        self.opt_ins.set_opted_in(subject_id, private_conversation_id)


def create_event_processor(store: Optional[KeyValueStore] = None,
                           classifier=None,
                           sender: Optional[MessageSender] = None,
                           with_preferences: bool = True) -> EventProcessor:
    """
    Wire an EventProcessor from configuration.

    Args:
        store: Persistent store, a DynamoDBStore from global config if None
        classifier: Classification collaborator, a Bedrock ClassificationService if None
        sender: Outbound transport
        with_preferences: Enable preference-aware suppression in the policy engine

    Returns:
        EventProcessor
    """
    store = store or DynamoDBStore(config.dynamodb)
    classifier = classifier or ClassificationService()

    alias_store = AliasStore(store)
    ema = EmaTracker(store)
    counter = ResponseCounter(store)

    return EventProcessor(resolver=AliasResolver(alias_store),
                          clarification=ClarificationHandler(alias_store, classifier),
                          activities=ActivityStore(store),
                          ema=ema,
                          patterns=PatternTracker(store),
                          preferences=PreferenceTracker(store, ema),
                          policy=ResponsePolicyEngine(counter, ConversationLog(store), preferences=ema if with_preferences else None),
                          counter=counter,
                          opt_ins=OptInRegistry(store),
                          classifier=classifier,
                          sender=sender)
