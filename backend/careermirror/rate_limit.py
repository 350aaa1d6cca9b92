"""Rate limiting singleton using slowapi."""

from slowapi import Limiter

from .analytics.service import client_ip

# Keyed on the real client address (X-Forwarded-For aware, behind a proxy)
limiter = Limiter(key_func=client_ip)
