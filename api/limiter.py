"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (mounted as middleware, attached to app.state) and by
api/routes/v1/auth.py (per-route limit on POST /auth/login).

One shared instance means one counter store; a limiter per module would keep
isolated counters and the limits would never trigger. Counters live in
process memory, so each worker process enforces its own budget.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://", headers_enabled=False)
