from .database.redis import SessionStore
from .core.config import settings

# This is the single, shared instance of the SessionStore.
# It is created once when the module is first imported.
session_store = SessionStore(settings.redis_url, ttl_seconds=settings.session_ttl_seconds)
