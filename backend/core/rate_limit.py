from slowapi import Limiter
from slowapi.util import get_remote_address

from config import settings

# Keyed by client address; applied to the public write endpoints
limiter = Limiter(key_func=get_remote_address)

WRITE_LIMIT = settings.RATE_LIMIT_WRITES
