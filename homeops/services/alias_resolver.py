"""
Alias Resolver: rewrites household vocabulary into canonical activity terms.
"""

import re
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..data.seed_aliases import SEED_ALIASES
from ..models.core import AliasResolution, AppliedAlias
from ..utils.config import AliasConfig, config
from ..utils.logging_config import get_logger
from .alias_store import AliasStore, normalize_alias_key

logger = get_logger(__name__)


@dataclass
class _CacheEntry:
    aliases: Dict[str, str]
    pattern: Optional[re.Pattern]
    group_keys: Dict[str, str]
    fetched_at: float


def _build_pattern(aliases: Dict[str, str]) -> Tuple[Optional[re.Pattern], Dict[str, str]]:
    """
    One alternation over all keys, longest first so phrases beat their words.

    Each key gets its own named group. Case-insensitive matching accepts
    characters such as U+017F or U+0130 whose lower() is not the key, so a
    match is mapped back to its key by group name, never by its text.

    Returns:
        Tuple of (compiled pattern or None, group name -> alias key)
    """
    if not aliases:
        return None, {}
    keys = sorted(aliases, key=len, reverse=True)
    group_keys = {f'a{i}': key for i, key in enumerate(keys)}
    alternation = '|'.join(f'(?P<{name}>{re.escape(key)})' for name, key in group_keys.items())
    return re.compile(rf'(?<![\w-])(?:{alternation})(?![\w-])', re.IGNORECASE), group_keys


class AliasResolver:
    """Merges seed and learned aliases per scope and applies them to text.

    The merged table is cached per scope in process memory for a fixed TTL.
    There is no cross-process invalidation; a write made by another process
    becomes visible once the local entry expires.
    """

    def __init__(self,
                 alias_store: AliasStore,
                 alias_config: Optional[AliasConfig] = None,
                 seed_aliases: Optional[Dict[str, str]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.alias_store = alias_store
        self.config = alias_config or config.aliases
        self.seed_aliases = {normalize_alias_key(k): v for k, v in (seed_aliases if seed_aliases is not None else SEED_ALIASES).items()}
        self.clock = clock
        self._cache: Dict[str, _CacheEntry] = {}

    def invalidate(self, scope_id: str) -> None:
        self._cache.pop(scope_id, None)

    def _merged_aliases(self, scope_id: str) -> _CacheEntry:
        now = self.clock()
        entry = self._cache.get(scope_id)
        if entry is not None and now - entry.fetched_at < self.config.cache_ttl_seconds:
            return entry

        merged = dict(self.seed_aliases)
        for learned in self.alias_store.get_aliases_for_scope(scope_id):
            merged[learned.alias_key] = learned.canonical_activity

        pattern, group_keys = _build_pattern(merged)
        entry = _CacheEntry(aliases=merged, pattern=pattern, group_keys=group_keys, fetched_at=now)
        self._cache[scope_id] = entry
        logger.debug(f'Cached {len(merged)} aliases for scope {scope_id}')
        return entry

    def resolve(self, scope_id: str, text: str) -> AliasResolution:
        """
        Replace every whole-word alias occurrence with its canonical activity.

        Args:
            scope_id: Vocabulary scope
            text: Raw message text

        Returns:
            AliasResolution with the rewritten text and the aliases applied,
            each listed once in order of first occurrence
        """
        entry = self._merged_aliases(scope_id)
        if not text or entry.pattern is None:
            return AliasResolution(resolved_text=text or '')

        applied: List[AppliedAlias] = []
        seen = set()

        def substitute(match: re.Match) -> str:
            key = entry.group_keys[match.lastgroup]
            canonical = entry.aliases[key]
            if key not in seen:
                seen.add(key)
                applied.append(AppliedAlias(alias=key, canonical_activity=canonical))
            return canonical

        resolved = entry.pattern.sub(substitute, text)
        if applied:
            logger.debug(f'Applied {len(applied)} aliases in scope {scope_id}')
        return AliasResolution(resolved_text=resolved, applied_aliases=applied)
