"""
Alias Store: scoped vocabulary learned from clarification replies.
"""

import re
from typing import List, Optional

from ..models.core import AliasEntry, AliasSource
from ..utils.config import AliasConfig, config
from ..utils.household_time import to_iso, utc_now
from ..utils.kv_store import KeyValueStore
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

_WHITESPACE = re.compile(r'\s+')


def normalize_alias_key(alias: str) -> str:
    return _WHITESPACE.sub(' ', alias.strip().lower())


class AliasStore:
    """CRUD over alias entries, one partition per scope."""

    def __init__(self, store: KeyValueStore, alias_config: Optional[AliasConfig] = None):
        self.store = store
        self.config = alias_config or config.aliases

    @staticmethod
    def _pk(scope_id: str) -> str:
        return f'ALIAS#{scope_id}'

    def get_aliases_for_scope(self, scope_id: str) -> List[AliasEntry]:
        """
        Read every learned alias of a scope in a single range read.

        Args:
            scope_id: Vocabulary scope, usually a conversation

        Returns:
            List of AliasEntry objects ordered by alias key
        """
        items = self.store.query(self._pk(scope_id), limit=self.config.max_aliases_per_scope)

        return [
            AliasEntry(scope_id=scope_id,
                       alias_key=item['sk'],
                       canonical_activity=item.get('canonical_activity', ''),
                       confirmations=int(item.get('confirmations', 0)),
                       source=AliasSource(item.get('source', AliasSource.LEARNED.value))) for item in items
        ]

    def put_alias(self,
                  scope_id: str,
                  alias: str,
                  canonical_activity: str,
                  source: AliasSource = AliasSource.LEARNED) -> AliasEntry:
        """Create or overwrite an alias. Overwriting resets its confirmations."""
        key = normalize_alias_key(alias)
        if not key:
            raise ValueError('Alias key must not be empty')

        self.store.put_item({
            'pk': self._pk(scope_id),
            'sk': key,
            'canonical_activity': canonical_activity,
            'confirmations': 0,
            'source': source.value,
            'updated_at': to_iso(utc_now()),
        })

        logger.info(f'Stored {source.value} alias {key!r} -> {canonical_activity!r} in scope {scope_id}')
        return AliasEntry(scope_id=scope_id, alias_key=key, canonical_activity=canonical_activity, source=source)

    def increment_confirmation(self, scope_id: str, alias: str) -> int:
        """Count one more explicit confirmation. Returns the new total."""
        item = self.store.increment(self._pk(scope_id),
                                    normalize_alias_key(alias),
                                    'confirmations',
                                    set_attributes={'updated_at': to_iso(utc_now())})
        return int(item.get('confirmations', 0))

    def delete_alias(self, scope_id: str, alias: str) -> None:
        self.store.delete_item(self._pk(scope_id), normalize_alias_key(alias))
        logger.info(f'Deleted alias {alias!r} from scope {scope_id}')
