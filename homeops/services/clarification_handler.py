"""
Clarification Reply Classifier: learns vocabulary from answers to "Did you mean ...?" prompts.

Only an explicit confirmation, or a correction the classifier is confident
about, may write to the alias store. Everything else is reported and left
alone; the assistant never re-prompts on its own.
"""

from typing import Callable, Optional

from ..data.reply_patterns import AFFIRMATIVE_WORDS, CLARIFICATION_PATTERN, extract_negation_remainder, normalize_reply
from ..models.core import ActivityType, AliasSource, ClarificationKind, ClarificationOutcome, ClarificationReply
from ..utils.config import ClarificationConfig, config
from ..utils.logging_config import get_logger
from .alias_store import AliasStore, normalize_alias_key

logger = get_logger(__name__)

# (activity, source_text) -> alias key
AliasKeyStrategy = Callable[[str, Optional[str]], str]


def canonical_term_key(activity: str, source_text: Optional[str]) -> str:
    """Key the alias on the classifier's activity term."""
    return normalize_alias_key(activity)


def source_token_key(activity: str, source_text: Optional[str]) -> str:
    """Key the alias on the user's own wording, falling back to the activity term."""
    if source_text and source_text.strip():
        return normalize_alias_key(source_text)
    return normalize_alias_key(activity)


class ClarificationHandler:
    """Interpret replies to disambiguation prompts."""

    def __init__(self,
                 alias_store: AliasStore,
                 classifier,
                 clarification_config: Optional[ClarificationConfig] = None,
                 key_strategy: AliasKeyStrategy = canonical_term_key):
        """
        Initialize the handler.

        Args:
            alias_store: Where confirmed and corrected aliases are written
            classifier: Collaborator with classify(text) -> ClassificationResult
            clarification_config: Thresholds, uses global config if None
            key_strategy: Chooses the alias key for a learned entry
        """
        self.alias_store = alias_store
        self.classifier = classifier
        self.config = clarification_config or config.clarification
        self.key_strategy = key_strategy

    def handle(self, reply: ClarificationReply) -> ClarificationOutcome:
        """
        Classify a reply and update vocabulary when it is unambiguous.

        Args:
            reply: The prompt being answered and the user's answer

        Returns:
            ClarificationOutcome tagged with exactly one ClarificationKind
        """
        match = CLARIFICATION_PATTERN.search(reply.original_prompt_text or '')
        if not match:
            return ClarificationOutcome(ClarificationKind.NOT_CLARIFICATION)

        suggested = match.group(1).strip()
        normalized = normalize_reply(reply.reply_text)

        if normalized in AFFIRMATIVE_WORDS:
            self._confirm(reply, suggested)
            return ClarificationOutcome(ClarificationKind.CONFIRMED, suggested)

        remainder = extract_negation_remainder(normalized)
        if remainder is None:
            logger.info(f'Ambiguous clarification reply in scope {reply.scope_id}')
            return ClarificationOutcome(ClarificationKind.AMBIGUOUS)

        if not remainder:
            return ClarificationOutcome(ClarificationKind.REJECTED_NO_REMAINDER)

        vocabulary = {a.alias_key: a.canonical_activity for a in self.alias_store.get_aliases_for_scope(reply.scope_id)}
        classification = self.classifier.classify(remainder, aliases=vocabulary)
        if (classification.type == ActivityType.NONE or not classification.activity
                or classification.confidence < self.config.correction_confidence):
            logger.info(f'Correction in scope {reply.scope_id} below confidence ({classification.confidence})')
            return ClarificationOutcome(ClarificationKind.LOW_CONFIDENCE)

        key = self.key_strategy(classification.activity, reply.source_text)
        self.alias_store.put_alias(reply.scope_id, key, classification.activity, AliasSource.LEARNED)
        return ClarificationOutcome(ClarificationKind.CORRECTED, classification.activity)

    def _confirm(self, reply: ClarificationReply, suggested: str) -> None:
        existing = next((a for a in self.alias_store.get_aliases_for_scope(reply.scope_id) if a.canonical_activity == suggested),
                        None)

        if existing is not None:
            self.alias_store.increment_confirmation(reply.scope_id, existing.alias_key)
        else:
            key = self.key_strategy(suggested, reply.source_text)
            self.alias_store.put_alias(reply.scope_id, key, suggested, AliasSource.LEARNED)
