"""
Configuration management for AWS services and household policy settings.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass
class DynamoDBConfig:
    """Configuration for the Amazon DynamoDB single-table store."""
    region: str
    table_name: str
    endpoint_url: Optional[str]
    connect_timeout: float
    read_timeout: float


@dataclass
class BedrockLLMConfig:
    """Configuration for Amazon Bedrock LLM service."""
    region: str
    model_id: str
    max_tokens: int
    temperature: float
    timeout: float


@dataclass
class TrackerConfig:
    """Smoothing factors for the EMA trackers."""
    effort_alpha: float
    ignore_alpha: float
    frequency_alpha: float


@dataclass
class PolicyConfig:
    """Thresholds for the response policy engine."""
    high_confidence: float
    clarify_confidence: float
    daily_cap: int
    cooldown_minutes: float
    fast_window_seconds: int
    fast_message_threshold: int
    quiet_start_hour: int
    quiet_end_hour: int
    ignore_rate_threshold: float
    low_frequency_threshold: float
    min_data_points: int


@dataclass
class AliasConfig:
    """Configuration for alias vocabulary storage and resolution."""
    cache_ttl_seconds: float
    max_aliases_per_scope: int


@dataclass
class ClarificationConfig:
    """Configuration for clarification reply handling."""
    correction_confidence: float


@dataclass
class HouseholdConfig:
    """Civil time settings shared by the household."""
    timezone: str


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    dynamodb: DynamoDBConfig
    bedrock_llm: BedrockLLMConfig
    trackers: TrackerConfig
    policy: PolicyConfig
    aliases: AliasConfig
    clarification: ClarificationConfig
    household: HouseholdConfig
    mcp: MCPConfig


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')
    region = os.getenv('AWS_REGION', 'eu-north-1')

    # DynamoDB configuration
    dynamodb_config = DynamoDBConfig(region=os.getenv('DYNAMODB_AWS_REGION', region),
                                     table_name=os.getenv('DYNAMODB_TABLE_NAME', 'HomeOps'),
                                     endpoint_url=os.getenv('DYNAMODB_ENDPOINT_URL') or None,
                                     connect_timeout=float(os.getenv('DYNAMODB_CONNECT_TIMEOUT', '2.0')),
                                     read_timeout=float(os.getenv('DYNAMODB_READ_TIMEOUT', '5.0')))

    # Bedrock configuration
    bedrock_llm_config = BedrockLLMConfig(region=os.getenv('BEDROCK_LLM_AWS_REGION', region),
                                          model_id=os.getenv('BEDROCK_LLM_MODEL_ID', 'anthropic.claude-3-haiku-20240307-v1:0'),
                                          max_tokens=int(os.getenv('BEDROCK_LLM_MAX_TOKENS', '200')),
                                          temperature=float(os.getenv('BEDROCK_LLM_TEMPERATURE', '0.2')),
                                          timeout=float(os.getenv('BEDROCK_LLM_TIMEOUT', '10.0')))

    # EMA smoothing
    tracker_config = TrackerConfig(effort_alpha=float(os.getenv('EMA_ALPHA', '0.3')),
                                   ignore_alpha=float(os.getenv('EMA_ALPHA_IGNORE', '0.2')),
                                   frequency_alpha=float(os.getenv('EMA_ALPHA_FREQUENCY', '0.2')))

    # Response policy
    policy_config = PolicyConfig(high_confidence=float(os.getenv('POLICY_CONFIDENCE_HIGH', '0.85')),
                                 clarify_confidence=float(os.getenv('POLICY_CONFIDENCE_CLARIFY', '0.50')),
                                 daily_cap=int(os.getenv('POLICY_DAILY_CAP', '3')),
                                 cooldown_minutes=float(os.getenv('POLICY_COOLDOWN_MINUTES', '15')),
                                 fast_window_seconds=int(os.getenv('POLICY_FAST_WINDOW_SECONDS', '60')),
                                 fast_message_threshold=int(os.getenv('POLICY_FAST_MESSAGE_THRESHOLD', '3')),
                                 quiet_start_hour=int(os.getenv('POLICY_QUIET_START_HOUR', '22')),
                                 quiet_end_hour=int(os.getenv('POLICY_QUIET_END_HOUR', '7')),
                                 ignore_rate_threshold=float(os.getenv('POLICY_IGNORE_RATE_THRESHOLD', '0.7')),
                                 low_frequency_threshold=float(os.getenv('POLICY_LOW_FREQUENCY_THRESHOLD', '1.0')),
                                 min_data_points=int(os.getenv('POLICY_MIN_DATA_POINTS', '10')))

    # Alias configuration
    alias_config = AliasConfig(cache_ttl_seconds=float(os.getenv('ALIAS_CACHE_TTL_SECONDS', '300')),
                               max_aliases_per_scope=int(os.getenv('ALIAS_MAX_PER_SCOPE', '500')))

    clarification_config = ClarificationConfig(
        correction_confidence=float(os.getenv('CLARIFICATION_CORRECTION_CONFIDENCE', '0.70')))

    household_config = HouseholdConfig(timezone=os.getenv('HOUSEHOLD_TIMEZONE', 'Europe/Stockholm'))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'sse'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     dynamodb=dynamodb_config,
                     bedrock_llm=bedrock_llm_config,
                     trackers=tracker_config,
                     policy=policy_config,
                     aliases=alias_config,
                     clarification=clarification_config,
                     household=household_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()
