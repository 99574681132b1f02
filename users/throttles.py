from rest_framework.throttling import SimpleRateThrottle
from django.core.cache import cache


class EmailScopedThrottle(SimpleRateThrottle):
    """Throttles POSTs per submitted email, per client IP when no email is given."""

    cache = cache  # Ensures that it uses Redis or a centralized cache backend

    def get_cache_key(self, request, view):
        if request.method != 'POST':
            return None
        ident = request.data.get('email', None)
        if ident:
            ident = str(ident).lower()
        else:
            ident = self.get_ident(request)
        return self.cache_format % {'scope': self.scope, 'ident': ident}


class LoginRateThrottle(EmailScopedThrottle):
    scope = 'login'


class PasswordResetRateThrottle(EmailScopedThrottle):
    scope = 'password_reset'
