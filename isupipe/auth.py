"""
isupipe - Session verification

Sessions live in the user_sessions table and are identified by the token in
the session cookie. verify() returns a typed AuthResult; callers never dig
the user id out of an untyped session bag.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional
import logging

from isupipe.errors import AuthError
from isupipe.storage.database import Database

logger = logging.getLogger(__name__)

SESSION_SQL = """
    SELECT user_id, expires_at
    FROM user_sessions
    WHERE token = %s
"""


@dataclass(frozen=True)
class AuthResult:
    """Verified identity of the acting user."""
    user_id: int
    expires_at: int


class SessionVerifier:
    """
    Verify session tokens against user_sessions.

    Args:
        database: Database to read sessions from
        clock: Epoch-seconds clock (injectable for tests)
    """

    def __init__(self, database: Database, clock: Callable[[], int] = lambda: int(time.time())):
        self.database = database
        self.clock = clock

    def verify(self, token: Optional[str]) -> AuthResult:
        """
        Verify a session token.

        Args:
            token: Value of the session cookie, or None

        Returns:
            AuthResult for the session's user

        Raises:
            AuthError: 403 if no session, 401 if unknown or expired
            StoreError: Session lookup failed
        """
        if not token:
            raise AuthError(403, "failed to get session")

        with self.database.unit_of_work() as uow:
            row = uow.transaction.query_one(SESSION_SQL, (token,))
            uow.commit()

        if row is None:
            raise AuthError(401, "failed to get USERID value from session")

        if self.clock() > row['expires_at']:
            logger.info(f"Session for user {row['user_id']} expired at {row['expires_at']}")
            raise AuthError(401, "session has expired")

        return AuthResult(user_id=row['user_id'], expires_at=row['expires_at'])
