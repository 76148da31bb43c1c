"""
api/limiter.py -- The slowapi Limiter shared by the app and the login route.

api/main.py mounts it (app.state.limiter + SlowAPIMiddleware) and
api/routes/v1/sessions.py decorates POST /sessions with @limiter.limit().
Both must use this one instance: a Limiter per module would keep separate
counters and the login limit would never trip.

Clients are keyed by remote address. Behind a reverse proxy, run uvicorn
with --proxy-headers so that address is the client's, not the proxy's.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=get_settings().rate_limit_storage_uri,
)
