# agrichain/state/__init__.py
from agrichain.state.app_state import AppState, AppStateError
from agrichain.state.sessions import SessionRegistry, sessions

__all__ = ["AppState", "AppStateError", "SessionRegistry", "sessions"]
