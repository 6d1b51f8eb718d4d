from composer_core.storage.json_store import JsonSessionStore
from composer_core.storage.memory import InMemorySessionStore
from composer_core.storage.protocols import SessionStore

__all__ = ["InMemorySessionStore", "JsonSessionStore", "SessionStore"]
