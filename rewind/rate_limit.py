"""Rate limiting / Limiteur de requetes.

slowapi, cle = adresse IP ; applique au login (RATE_LIMIT_LOGIN).
slowapi keyed on client IP; applied to login (RATE_LIMIT_LOGIN).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
