"""
isupipe - Reference resolvers

A resolver turns a set of foreign keys of one type into entities with a
single batched query:

    SELECT ... WHERE <key> = ANY(%s)

with the distinct keys bound as one array parameter. An empty key set never
reaches the database. Keys with no matching row are simply absent from the
result; the assembler decides what a miss means.

Resolvers hold no per-call state and are shared across call sites.
"""

from typing import Any, Callable, Dict, Generic, Iterable, List, TypeVar
import logging

from isupipe.storage.unit_of_work import Transaction

logger = logging.getLogger(__name__)

K = TypeVar('K')
E = TypeVar('E')


def distinct_keys(keys: Iterable[K]) -> List[K]:
    """Deduplicate keys, keeping first-seen order."""
    return list(dict.fromkeys(keys))


class _BatchedLookup(Generic[K, E]):

    def __init__(
        self,
        name: str,
        sql: str,
        row_factory: Callable[[Dict[str, Any]], E],
        key_of: Callable[[E], K]
    ):
        self.name = name
        self.sql = sql
        self.row_factory = row_factory
        self.key_of = key_of

    def _fetch(self, tx: Transaction, keys: Iterable[K]) -> List[E]:
        unique = distinct_keys(keys)
        if not unique:
            return []

        rows = tx.query(self.sql, (unique,))
        logger.debug(f"{self.name}: {len(unique)} keys -> {len(rows)} rows")
        return [self.row_factory(row) for row in rows]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class ReferenceResolver(_BatchedLookup[K, E]):
    """One-to-one lookup: key -> entity."""

    def resolve(self, tx: Transaction, keys: Iterable[K]) -> Dict[K, E]:
        """
        Resolve keys with one batched query.

        Args:
            tx: Caller's transaction
            keys: Foreign keys, duplicates allowed

        Returns:
            Mapping of matched keys to entities (first row wins)
        """
        resolved: Dict[K, E] = {}
        for entity in self._fetch(tx, keys):
            resolved.setdefault(self.key_of(entity), entity)
        return resolved


class GroupResolver(_BatchedLookup[K, E]):
    """One-to-many lookup: key -> entities, in query order."""

    def resolve(self, tx: Transaction, keys: Iterable[K]) -> Dict[K, List[E]]:
        grouped: Dict[K, List[E]] = {}
        for entity in self._fetch(tx, keys):
            grouped.setdefault(self.key_of(entity), []).append(entity)
        return grouped
