"""
Key-value store abstraction with composite (pk, sk) keys and conditional writes.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .logging_config import get_logger

logger = get_logger(__name__)

Item = Dict[str, Any]


class StoreError(Exception):
    """Custom exception for unexpected store failures."""
    pass


class ConcurrencyConflict(Exception):
    """Raised when a conditional write loses against a concurrent writer."""
    pass


@dataclass(frozen=True)
class WriteCondition:
    """Precondition for a put.

    Either the record must not exist yet, or the named attribute must still
    hold the expected value.
    """
    must_not_exist: bool = False
    attribute: Optional[str] = None
    expected: Any = None

    @classmethod
    def not_exists(cls) -> 'WriteCondition':
        return cls(must_not_exist=True)

    @classmethod
    def attribute_equals(cls, attribute: str, expected: Any) -> 'WriteCondition':
        return cls(attribute=attribute, expected=expected)


class KeyValueStore(ABC):
    """Storage operations every component relies on.

    Items are plain dicts that always carry their 'pk' and 'sk' keys.
    """

    @abstractmethod
    def get_item(self, pk: str, sk: str) -> Optional[Item]:
        """Point read. Returns None when the record does not exist."""

    @abstractmethod
    def put_item(self, item: Item, condition: Optional[WriteCondition] = None) -> None:
        """Write a full record, optionally guarded by a condition.

        Raises:
            ConcurrencyConflict: If the condition does not hold
            StoreError: On any other failure
        """

    @abstractmethod
    def query(self,
              pk: str,
              sk_prefix: Optional[str] = None,
              sk_range: Optional[Tuple[str, str]] = None,
              limit: Optional[int] = None,
              descending: bool = False) -> List[Item]:
        """Range read within one partition, ordered by sort key.

        sk_range bounds are inclusive.
        """

    @abstractmethod
    def increment(self,
                  pk: str,
                  sk: str,
                  attribute: str,
                  amount: int = 1,
                  set_attributes: Optional[Dict[str, Any]] = None) -> Item:
        """Atomically add to a numeric attribute, creating the record if needed."""

    @abstractmethod
    def delete_item(self, pk: str, sk: str) -> None:
        """Remove a record. Deleting a missing record is not an error."""


class InMemoryStore(KeyValueStore):
    """Process-local store used for tests and local runs."""

    def __init__(self):
        self._items: Dict[Tuple[str, str], Item] = {}

    def get_item(self, pk: str, sk: str) -> Optional[Item]:
        item = self._items.get((pk, sk))
        return copy.deepcopy(item) if item is not None else None

    def put_item(self, item: Item, condition: Optional[WriteCondition] = None) -> None:
        key = (item['pk'], item['sk'])
        current = self._items.get(key)

        if condition is not None:
            if condition.must_not_exist and current is not None:
                raise ConcurrencyConflict(f'Record {key} already exists')
            if condition.attribute is not None:
                if current is None or current.get(condition.attribute) != condition.expected:
                    raise ConcurrencyConflict(f'Condition on {condition.attribute} failed for {key}')

        self._items[key] = copy.deepcopy(item)

    def query(self,
              pk: str,
              sk_prefix: Optional[str] = None,
              sk_range: Optional[Tuple[str, str]] = None,
              limit: Optional[int] = None,
              descending: bool = False) -> List[Item]:
        matches = []
        for (item_pk, item_sk), item in self._items.items():
            if item_pk != pk:
                continue
            if sk_prefix is not None and not item_sk.startswith(sk_prefix):
                continue
            if sk_range is not None and not sk_range[0] <= item_sk <= sk_range[1]:
                continue
            matches.append(item)

        matches.sort(key=lambda i: i['sk'], reverse=descending)
        if limit is not None:
            matches = matches[:limit]
        return [copy.deepcopy(i) for i in matches]

    def increment(self,
                  pk: str,
                  sk: str,
                  attribute: str,
                  amount: int = 1,
                  set_attributes: Optional[Dict[str, Any]] = None) -> Item:
        item = self._items.setdefault((pk, sk), {'pk': pk, 'sk': sk})
        item[attribute] = item.get(attribute, 0) + amount
        if set_attributes:
            item.update(copy.deepcopy(set_attributes))
        return copy.deepcopy(item)

    def delete_item(self, pk: str, sk: str) -> None:
        self._items.pop((pk, sk), None)
