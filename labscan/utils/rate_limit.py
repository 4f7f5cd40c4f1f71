import os

from slowapi import Limiter
from slowapi.util import get_remote_address

UPLOAD_RATE_LIMIT = (os.getenv("UPLOAD_RATE_LIMIT") or "10/minute").strip()
PARSE_RATE_LIMIT = (os.getenv("PARSE_RATE_LIMIT") or "60/minute").strip()

limiter = Limiter(key_func=get_remote_address, default_limits=[])
