"""
Health check utilities for the application.
"""

from typing import Any, Dict

from .bedrock_llm import BedrockLLM
from .config import config
from .dynamodb_client import DynamoDBStore
from .logging_config import get_logger

logger = get_logger(__name__)


def check_health() -> bool:
    """Check the health of all system components.

    Returns:
        True if all components are healthy, False otherwise
    """
    try:
        health_status = get_health_status()

        all_healthy = all(status.get('healthy', False) for status in health_status.values())

        if all_healthy:
            logger.info('All system components are healthy')
        else:
            logger.warning('Some system components are unhealthy')

        return all_healthy

    except Exception as e:
        logger.error(f'Health check failed: {e}')
        return False


def get_health_status() -> Dict[str, Any]:
    """Get detailed health status of all components.

    Returns:
        Dictionary with health status of each component
    """
    health_status = {}

    # Check DynamoDB
    try:
        store = DynamoDBStore(config.dynamodb)
        health_status['dynamodb'] = {
            'healthy': store.health_check(),
            'service': 'Amazon DynamoDB',
            'table': config.dynamodb.table_name
        }
    except Exception as e:
        health_status['dynamodb'] = {'healthy': False, 'service': 'Amazon DynamoDB', 'error': str(e)}

    # Check Bedrock LLM
    try:
        llm = BedrockLLM(config.bedrock_llm)
        health_status['bedrock_llm'] = {
            'healthy': llm.health_check(),
            'service': 'Amazon Bedrock LLM',
            'model': config.bedrock_llm.model_id
        }
    except Exception as e:
        health_status['bedrock_llm'] = {'healthy': False, 'service': 'Amazon Bedrock LLM', 'error': str(e)}

    return health_status


def get_system_info() -> Dict[str, Any]:
    """Get system information and configuration.

    Returns:
        Dictionary with system information
    """
    return {
        'service_name': 'HomeOps',
        'version': '1.0.0',
        'configuration': {
            'bedrock_llm_model': config.bedrock_llm.model_id,
            'dynamodb_table': config.dynamodb.table_name,
            'household_timezone': config.household.timezone,
            'daily_cap': config.policy.daily_cap,
            'aws_region': config.dynamodb.region
        },
        'health_status': get_health_status()
    }
