# agrichain/state/sessions.py

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from agrichain.services.auth_service import AuthService
from agrichain.services.database_service import DatabaseService
from agrichain.state.app_state import AppState


class _Session:
    __slots__ = ("auth", "state", "lock")

    def __init__(self, auth: AuthService, state: AppState):
        self.auth = auth
        self.state = state
        self.lock = threading.RLock()


class SessionRegistry:
    """
    One AppState per signed-in user, kept in process memory.

    `session_for(uid)` hands out the user's store under a per-session lock,
    so request handlers never interleave on the same store.
    """

    def __init__(self, db_factory: Optional[Callable[[], object]] = None):
        self._db_factory = db_factory
        self._sessions: Dict[str, _Session] = {}
        self._lock = threading.Lock()
        self.profile_fetch_attempts = 3
        self.profile_fetch_delay = 1.0

    def configure(self, app) -> None:
        self.profile_fetch_attempts = app.config.get("PROFILE_FETCH_ATTEMPTS", 3)
        self.profile_fetch_delay = app.config.get("PROFILE_FETCH_DELAY", 1.0)

    def _new_session(self) -> _Session:
        db = self._db_factory() if self._db_factory else None
        database = DatabaseService(db)
        auth = AuthService(database_service=database)
        state = AppState(
            auth,
            database,
            profile_fetch_attempts=self.profile_fetch_attempts,
            profile_fetch_delay=self.profile_fetch_delay,
        )
        state.initialize()
        return _Session(auth, state)

    def open(self) -> _Session:
        """Fresh, signed-out session (sign-up / sign-in flows)."""
        return self._new_session()

    def adopt(self, uid: str, session: _Session) -> None:
        with self._lock:
            old = self._sessions.pop(uid, None)
            self._sessions[uid] = session
        if old is not None and old is not session:
            old.state.dispose()

    def _get_or_restore(self, uid: str) -> Optional[_Session]:
        with self._lock:
            session = self._sessions.get(uid)
        if session is not None:
            return session

        session = self._new_session()
        if session.auth.restore(uid) is None:
            session.state.dispose()
            return None

        with self._lock:
            # another request may have restored it meanwhile
            existing = self._sessions.setdefault(uid, session)
        if existing is not session:
            session.state.dispose()
        return existing

    @contextmanager
    def session_for(self, uid: str) -> Iterator[Optional[AppState]]:
        session = self._get_or_restore(uid)
        if session is None:
            yield None
            return
        with session.lock:
            yield session.state

    def close(self, uid: str) -> None:
        with self._lock:
            session = self._sessions.pop(uid, None)
        if session is not None:
            with session.lock:
                session.state.sign_out()
                session.state.dispose()

    def clear(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.state.dispose()

    def __len__(self) -> int:
        return len(self._sessions)


sessions = SessionRegistry()
