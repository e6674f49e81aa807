"""
Amazon Bedrock LLM client wrapper with error handling.
"""

from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import BedrockLLMConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class BedrockLLMError(Exception):
    """Custom exception for Bedrock LLM errors."""
    pass


class BedrockLLM:
    """Amazon Bedrock LLM client using the Converse API.

    A single attempt is made per call: the caller's upstream redelivery is
    the only retry mechanism, bounded by its own invocation deadline.
    """

    def __init__(self, config: BedrockLLMConfig):
        """
        Initialize Bedrock LLM client.

        Args:
            config: BedrockLLMConfig instance with connection parameters
        """
        self.config = config
        self.model_id = config.model_id

        self.bedrock_runtime = boto3.client('bedrock-runtime',
                                            region_name=config.region,
                                            config=BotoConfig(connect_timeout=config.timeout,
                                                              read_timeout=config.timeout,
                                                              retries={'max_attempts': 0}))

        logger.info(f'Initialized Bedrock LLM client with model: {self.model_id}')

    def generate_response(self,
                          messages: List[Dict[str, Any]],
                          system_prompt: str,
                          max_tokens: Optional[int] = None,
                          temperature: Optional[float] = None,
                          stop_sequences: Optional[List[str]] = None) -> Tuple[str, Optional[Dict[str, Any]]]:
        """
        Generate a response using the Bedrock Converse API.

        Args:
            messages: List of message dictionaries in Bedrock format
            system_prompt: System prompt for the conversation
            max_tokens: Maximum tokens to generate (uses config default if None)
            temperature: Temperature for generation (uses config default if None)
            stop_sequences: Stop sequences for generation

        Returns:
            Tuple of (response_text, usage)

        Raises:
            BedrockLLMError: If the call fails or returns no text
        """
        inf_params = {
            'maxTokens': max_tokens or self.config.max_tokens,
            'temperature': self.config.temperature if temperature is None else temperature,
            'stopSequences': stop_sequences or [],
        }

        try:
            response = self.bedrock_runtime.converse(modelId=self.model_id,
                                                     messages=messages,
                                                     system=[{'text': system_prompt}],
                                                     inferenceConfig=inf_params)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f'Bedrock LLM call failed: {e}')
            raise BedrockLLMError(f'Bedrock LLM call failed: {e}')

        content = response.get('output', {}).get('message', {}).get('content', [])
        text = ''.join(block.get('text', '') for block in content)
        if not text:
            raise BedrockLLMError('Bedrock LLM returned no text content')

        logger.debug(f'Bedrock LLM response generated successfully (length: {len(text)})')
        return text, response.get('usage')

    def health_check(self) -> bool:
        """
        Perform a health check on the Bedrock LLM service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            test_messages = [{'role': 'user', 'content': [{'text': 'Hi'}]}]
            response, _ = self.generate_response(messages=test_messages,
                                                 system_prompt="You are a helpful assistant. Respond with just 'OK'.",
                                                 max_tokens=10,
                                                 temperature=0.0)
            return len(response.strip()) > 0

        except Exception as e:
            logger.error(f'Bedrock LLM health check failed: {e}')
            return False
