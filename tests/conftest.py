"""
Shared pytest fixtures for the isupipe test suite.

Unit tests run against FakeStore, an in-memory stand-in for Postgres that
answers exactly the statements isupipe issues, records every statement, and
keeps writes pending until commit. Tests marked `integration` use a real
database at DATABASE_URL and are skipped without one.
"""

import hashlib
import os
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Tuple

import psycopg
import pytest

from isupipe.hydration.reactions import ReactionHydrator
from isupipe.service import ReactionService
from isupipe.storage.database import Database
from isupipe.storage.unit_of_work import Transaction

FALLBACK_ICON_HASH = hashlib.sha256(b"NoImage").hexdigest()
NOW = 1_700_000_000

TABLES = (
    'users',
    'themes',
    'icons',
    'livestreams',
    'tags',
    'livestream_tags',
    'reactions',
    'user_sessions',
)


class FakeStore:
    """Committed tables plus counters shared by every FakeConnection."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in TABLES}
        self.statements: List[Tuple[str, Any]] = []
        self.next_reaction_id = 1
        self.fail_on: Optional[str] = None
        self.fail_commit = False
        self.before_execute: Optional[Callable[[str], None]] = None
        self.commits = 0
        self.rollbacks = 0

    def add(self, table: str, **row: Any) -> Dict[str, Any]:
        self.tables[table].append(row)
        return row

    def connect(self) -> 'FakeConnection':
        return FakeConnection(self)

    @contextmanager
    def connection(self):
        yield self.connect()

    def count(self, fragment: str) -> int:
        """Number of executed statements containing fragment."""
        return sum(1 for sql, _ in self.statements if fragment in sql)

    def queries(self) -> List[Tuple[str, Any]]:
        """Executed statements, minus per-transaction settings."""
        return [(sql, params) for sql, params in self.statements if 'set_config' not in sql]


class FakeConnection:

    def __init__(self, store: FakeStore):
        self.store = store
        self.pending: List[Tuple[str, Dict[str, Any]]] = []

    def cursor(self, row_factory=None) -> 'FakeCursor':
        return FakeCursor(self)

    def commit(self) -> None:
        if self.store.fail_commit:
            raise psycopg.OperationalError("simulated commit failure")
        for table, row in self.pending:
            self.store.tables[table].append(row)
        self.pending = []
        self.store.commits += 1

    def rollback(self) -> None:
        self.pending = []
        self.store.rollbacks += 1

    def visible(self, table: str) -> List[Dict[str, Any]]:
        return self.store.tables[table] + [row for t, row in self.pending if t == table]

    def answer(self, sql: str, params: Any) -> Optional[List[Dict[str, Any]]]:
        if 'set_config' in sql:
            return [{'set_config': params[0]}]

        if sql.strip() == 'SELECT 1':
            return [{'?column?': 1}]

        if 'INSERT INTO reactions' in sql:
            user_id, livestream_id, emoji_name, created_at = params
            row = {
                'id': self.store.next_reaction_id,
                'emoji_name': emoji_name,
                'user_id': user_id,
                'livestream_id': livestream_id,
                'created_at': created_at,
            }
            self.store.next_reaction_id += 1
            self.pending.append(('reactions', row))
            return [{'id': row['id']}]

        if 'FROM reactions' in sql:
            rows = [r for r in self.visible('reactions') if r['livestream_id'] == params[0]]
            rows = sorted(rows, key=lambda r: r['created_at'], reverse=True)
            if len(params) > 1:
                rows = rows[:params[1]]
            return [dict(r) for r in rows]

        if 'FROM user_sessions' in sql:
            return [dict(s) for s in self.visible('user_sessions') if s['token'] == params[0]]

        keys = set(params[0])

        if 'FROM users' in sql:
            return [
                {k: u[k] for k in ('id', 'name', 'display_name', 'description')}
                for u in self.visible('users') if u['id'] in keys
            ]

        if 'FROM themes' in sql:
            themes = [t for t in self.visible('themes') if t['user_id'] in keys]
            return [dict(t) for t in sorted(themes, key=lambda t: t['id'])]

        if 'FROM icons' in sql:
            latest: Dict[int, Dict[str, Any]] = {}
            for icon in self.visible('icons'):
                if icon['user_id'] in keys:
                    if icon['user_id'] not in latest or icon['id'] > latest[icon['user_id']]['id']:
                        latest[icon['user_id']] = icon
            return [
                {'user_id': user_id, 'icon_hash': hashlib.sha256(icon['image']).hexdigest()}
                for user_id, icon in sorted(latest.items())
            ]

        if 'FROM livestreams' in sql:
            return [dict(ls) for ls in self.visible('livestreams') if ls['id'] in keys]

        if 'FROM livestream_tags' in sql:
            tags = {t['id']: t for t in self.visible('tags')}
            links = sorted(
                (lt for lt in self.visible('livestream_tags') if lt['livestream_id'] in keys),
                key=lambda lt: lt['id']
            )
            return [
                {'livestream_id': lt['livestream_id'], 'id': lt['tag_id'], 'name': tags[lt['tag_id']]['name']}
                for lt in links if lt['tag_id'] in tags
            ]

        raise AssertionError(f"unexpected statement: {sql}")


class FakeCursor:

    def __init__(self, connection: FakeConnection):
        self.connection = connection
        self.description = None
        self._rows: List[Dict[str, Any]] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql: str, params: Any = None) -> None:
        store = self.connection.store
        store.statements.append((' '.join(sql.split()), params))

        if store.before_execute:
            store.before_execute(sql)

        if store.fail_on and store.fail_on in sql:
            raise psycopg.OperationalError(f"simulated failure on {store.fail_on}")

        rows = self.connection.answer(sql, params)
        self._rows = rows or []
        self.description = [('column',)] if rows is not None else None

    def fetchall(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    def fetchone(self) -> Optional[Dict[str, Any]]:
        return self._rows[0] if self._rows else None


def seed(store: FakeStore) -> FakeStore:
    """
    Reference data used across tests:

    - user 7 (alice): theme, two icons (latest wins)
    - user 8 (bob): no theme, no icon
    - livestream 42 owned by user 8, tagged [chill, music]
    - livestream 43 owned by user 500 (missing)
    - session "alice-token" for user 7, "expired-token" for user 8
    """
    store.add('users', id=7, name='alice', display_name='Alice', description='first user')
    store.add('users', id=8, name='bob', display_name='Bob', description='')
    store.add('themes', id=1, user_id=7, dark_mode=True)
    store.add('icons', id=1, user_id=7, image=b'old-icon')
    store.add('icons', id=2, user_id=7, image=b'alice-icon')
    store.add(
        'livestreams', id=42, user_id=8, title='Lo-fi beats', description='study with me',
        playlist_url='https://media.example/42.m3u8', thumbnail_url='https://media.example/42.jpg',
        start_at=NOW - 3600, end_at=NOW + 3600
    )
    store.add(
        'livestreams', id=43, user_id=500, title='Orphaned', description='',
        playlist_url='', thumbnail_url='', start_at=NOW, end_at=NOW + 60
    )
    store.add('tags', id=1, name='music')
    store.add('tags', id=2, name='chill')
    store.add('livestream_tags', id=10, livestream_id=42, tag_id=2)
    store.add('livestream_tags', id=11, livestream_id=42, tag_id=1)
    store.add('user_sessions', token='alice-token', user_id=7, expires_at=NOW + 3600)
    store.add('user_sessions', token='expired-token', user_id=8, expires_at=NOW - 1)
    return store


@pytest.fixture
def now() -> int:
    return NOW


@pytest.fixture
def fallback_icon_hash() -> str:
    return FALLBACK_ICON_HASH


@pytest.fixture
def store() -> FakeStore:
    return seed(FakeStore())


@pytest.fixture
def empty_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def tx(store: FakeStore) -> Transaction:
    """A bare transaction on a fresh fake connection."""
    return Transaction(store.connect())


@pytest.fixture
def database(store: FakeStore) -> Database:
    return Database(store.connection)


@pytest.fixture
def hydrator() -> ReactionHydrator:
    return ReactionHydrator.build(FALLBACK_ICON_HASH)


@pytest.fixture
def service(database: Database, hydrator: ReactionHydrator) -> ReactionService:
    return ReactionService(database, hydrator, clock=lambda: NOW)


# Real database (integration tests only)

@pytest.fixture(scope='session')
def db_url() -> str:
    """Get database URL from environment, or skip."""
    url = os.getenv('DATABASE_URL')
    if not url:
        pytest.skip("DATABASE_URL not set")
    return url


@pytest.fixture
def db_conn(db_url: str):
    """
    Provide a test database connection with automatic transaction rollback.

    Each test runs in a transaction that is rolled back at the end.
    """
    with psycopg.connect(db_url) as conn:
        conn.autocommit = False

        yield conn

        conn.rollback()
