"""
Household activity classifier backed by Amazon Bedrock.
"""

import json
from typing import Dict, Optional

from ..models.core import ActivityType, ClassificationResult
from ..utils.bedrock_llm import BedrockLLM, BedrockLLMError
from ..utils.config import config
from ..utils.json_utils import parse_json_object
from ..utils.logging_config import get_logger
from .ema_tracker import EFFORT_VALUES

logger = get_logger(__name__)

FALLBACK_RESULT = ClassificationResult(type=ActivityType.NONE, activity='', effort='low', confidence=0.0)

SYSTEM_PROMPT = """You are a household activity classifier. Given a chat message, classify it into one of three types: "chore", "recovery", or "none".

- "chore": household tasks or productive activities
- "recovery": rest, relaxation, or self-care activities
- "none": messages that do not describe any activity

Assign an effort level: "low", "medium", or "high" based on physical/mental effort required.
Provide a short activity label and a confidence score between 0 and 1.

Confidence bands:
- 0.85-1.0: message clearly describes an activity
- 0.6-0.84: message likely describes an activity
- 0.3-0.59: message is ambiguous
- 0.0-0.29: message is unlikely an activity

Examples:
- "Cleaned the whole flat" -> {"type": "chore", "activity": "cleaning", "effort": "high", "confidence": 0.95}
- "Did the washing-up after dinner" -> {"type": "chore", "activity": "washing-up", "effort": "medium", "confidence": 0.92}
- "Put on a load of laundry" -> {"type": "chore", "activity": "laundry", "effort": "medium", "confidence": 0.90}
- "Had a nap on the sofa" -> {"type": "recovery", "activity": "resting", "effort": "low", "confidence": 0.88}
- "What are we eating tonight?" -> {"type": "none", "activity": "", "effort": "low", "confidence": 0.15}

Respond with a single JSON object with exactly the keys "type", "activity", "effort" and "confidence"."""


class ClassificationError(Exception):
    """Custom exception for classification errors."""
    pass


def parse_classification(data: Dict) -> ClassificationResult:
    """
    Validate a raw classification payload.

    Raises:
        ClassificationError: If any field is missing or out of range
    """
    try:
        activity_type = ActivityType(str(data['type']).strip().lower())
        activity = str(data.get('activity', '')).strip()
        effort = str(data.get('effort', 'low')).strip().lower()
        confidence = float(data['confidence'])
    except (KeyError, ValueError, TypeError) as e:
        raise ClassificationError(f'Malformed classification: {e}')

    if effort not in EFFORT_VALUES:
        raise ClassificationError(f'Unknown effort level: {effort}')
    if not 0.0 <= confidence <= 1.0:
        raise ClassificationError(f'Confidence out of range: {confidence}')
    if activity_type != ActivityType.NONE and not activity:
        raise ClassificationError('Activity label missing for non-none classification')

    return ClassificationResult(type=activity_type, activity=activity, effort=effort, confidence=confidence)


class ClassificationService:
    """Classify household messages with a Bedrock LLM.

    Any failure degrades to FALLBACK_RESULT so that classification never
    blocks the pipeline.
    """

    def __init__(self, llm: Optional[BedrockLLM] = None):
        """Initialize the classification service."""
        self.llm = llm or BedrockLLM(config.bedrock_llm)
        logger.info('Initialized ClassificationService')

    def classify(self, text: str, aliases: Optional[Dict[str, str]] = None) -> ClassificationResult:
        """
        Classify one message.

        Args:
            text: Message text, already alias-resolved
            aliases: Optional scope vocabulary (alias -> canonical activity)

        Returns:
            ClassificationResult, or FALLBACK_RESULT on any failure
        """
        if not text or not text.strip():
            return FALLBACK_RESULT

        system_prompt = SYSTEM_PROMPT
        if aliases:
            vocabulary = json.dumps(aliases, ensure_ascii=False)
            system_prompt += f'\n\nThis household uses these words for activities (word -> activity label): {vocabulary}'

        messages = [{'role': 'user', 'content': [{'text': text}]}]

        try:
            response, _ = self.llm.generate_response(messages=messages, system_prompt=system_prompt)
            try:
                data = parse_json_object(response)
            except ValueError as e:
                raise ClassificationError(f'Unparseable classifier output: {e}')
            result = parse_classification(data)
        except (BedrockLLMError, ClassificationError) as e:
            logger.error(f'Classification failed, using fallback: {e}')
            return FALLBACK_RESULT

        logger.debug(f'Classified message as {result.type.value}/{result.activity} ({result.confidence})')
        return result
