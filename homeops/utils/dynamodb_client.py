"""
Amazon DynamoDB implementation of the key-value store.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import DynamoDBConfig
from .kv_store import ConcurrencyConflict, Item, KeyValueStore, StoreError, WriteCondition
from .logging_config import get_logger

logger = get_logger(__name__)


def _to_dynamo(value: Any) -> Any:
    """Convert Python values into types the DynamoDB resource API accepts."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dynamo(v) for v in value]
    return value


def _from_dynamo(value: Any) -> Any:
    """Convert DynamoDB Decimals back into ints or floats."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


class DynamoDBStore(KeyValueStore):
    """Single-table DynamoDB store keyed on 'pk' and 'sk'."""

    def __init__(self, config: DynamoDBConfig):
        """
        Initialize the DynamoDB table resource.

        Args:
            config: DynamoDBConfig instance with connection parameters
        """
        self.config = config

        resource = boto3.resource(
            'dynamodb',
            region_name=config.region,
            endpoint_url=config.endpoint_url,
            config=BotoConfig(
                connect_timeout=config.connect_timeout,
                read_timeout=config.read_timeout,
                retries={'max_attempts': 0}  # Redelivery upstream is the only retry
            ))
        self.table = resource.Table(config.table_name)

        logger.info(f'Initialized DynamoDB store for table: {config.table_name}')

    def get_item(self, pk: str, sk: str) -> Optional[Item]:
        try:
            response = self.table.get_item(Key={'pk': pk, 'sk': sk}, ConsistentRead=True)
        except (ClientError, BotoCoreError) as e:
            logger.error(f'DynamoDB get_item failed for {pk}/{sk}: {e}')
            raise StoreError(f'Failed to get {pk}/{sk}: {e}')

        item = response.get('Item')
        return _from_dynamo(item) if item is not None else None

    def put_item(self, item: Item, condition: Optional[WriteCondition] = None) -> None:
        kwargs: Dict[str, Any] = {'Item': _to_dynamo(item)}

        if condition is not None:
            if condition.must_not_exist:
                kwargs['ConditionExpression'] = Attr('pk').not_exists()
            elif condition.attribute is not None:
                kwargs['ConditionExpression'] = Attr(condition.attribute).eq(_to_dynamo(condition.expected))

        try:
            self.table.put_item(**kwargs)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException':
                raise ConcurrencyConflict(f'Conditional write lost for {item["pk"]}/{item["sk"]}')
            logger.error(f'DynamoDB put_item failed for {item["pk"]}/{item["sk"]}: {e}')
            raise StoreError(f'Failed to put {item["pk"]}/{item["sk"]}: {e}')
        except BotoCoreError as e:
            logger.error(f'DynamoDB put_item failed for {item["pk"]}/{item["sk"]}: {e}')
            raise StoreError(f'Failed to put {item["pk"]}/{item["sk"]}: {e}')

    def query(self,
              pk: str,
              sk_prefix: Optional[str] = None,
              sk_range: Optional[Tuple[str, str]] = None,
              limit: Optional[int] = None,
              descending: bool = False) -> List[Item]:
        key_condition = Key('pk').eq(pk)
        if sk_prefix is not None:
            key_condition = key_condition & Key('sk').begins_with(sk_prefix)
        elif sk_range is not None:
            key_condition = key_condition & Key('sk').between(sk_range[0], sk_range[1])

        kwargs: Dict[str, Any] = {
            'KeyConditionExpression': key_condition,
            'ScanIndexForward': not descending,
        }

        items: List[Item] = []
        try:
            while True:
                if limit is not None:
                    kwargs['Limit'] = limit - len(items)
                response = self.table.query(**kwargs)
                items.extend(_from_dynamo(i) for i in response.get('Items', []))

                last_key = response.get('LastEvaluatedKey')
                if not last_key or (limit is not None and len(items) >= limit):
                    break
                kwargs['ExclusiveStartKey'] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error(f'DynamoDB query failed for {pk}: {e}')
            raise StoreError(f'Failed to query {pk}: {e}')

        logger.debug(f'DynamoDB query on {pk} returned {len(items)} items')
        return items

    def increment(self,
                  pk: str,
                  sk: str,
                  attribute: str,
                  amount: int = 1,
                  set_attributes: Optional[Dict[str, Any]] = None) -> Item:
        names = {'#attr': attribute}
        values: Dict[str, Any] = {':inc': amount}
        set_clauses = []

        for i, (name, value) in enumerate((set_attributes or {}).items()):
            names[f'#s{i}'] = name
            values[f':s{i}'] = _to_dynamo(value)
            set_clauses.append(f'#s{i} = :s{i}')

        expression = 'ADD #attr :inc'
        if set_clauses:
            expression = f'SET {", ".join(set_clauses)} {expression}'

        try:
            response = self.table.update_item(Key={'pk': pk, 'sk': sk},
                                              UpdateExpression=expression,
                                              ExpressionAttributeNames=names,
                                              ExpressionAttributeValues=values,
                                              ReturnValues='ALL_NEW')
        except (ClientError, BotoCoreError) as e:
            logger.error(f'DynamoDB increment failed for {pk}/{sk}: {e}')
            raise StoreError(f'Failed to increment {attribute} on {pk}/{sk}: {e}')

        return _from_dynamo(response.get('Attributes', {}))

    def delete_item(self, pk: str, sk: str) -> None:
        try:
            self.table.delete_item(Key={'pk': pk, 'sk': sk})
        except (ClientError, BotoCoreError) as e:
            logger.error(f'DynamoDB delete_item failed for {pk}/{sk}: {e}')
            raise StoreError(f'Failed to delete {pk}/{sk}: {e}')

    def health_check(self) -> bool:
        """
        Check that the table is reachable.

        Returns:
            True if the table can be described, False otherwise
        """
        try:
            self.table.load()
            return self.table.table_status in ('ACTIVE', 'UPDATING')
        except Exception as e:
            logger.error(f'DynamoDB health check failed: {e}')
            return False
