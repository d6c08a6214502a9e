"""Custom middleware helpers for the Card Vault backend."""

from __future__ import annotations

from typing import Callable


class JWTCSRFBypassMiddleware:
    """Skip CSRF enforcement for stateless JWT authenticated requests.

    Mutating API calls authenticate with an Authorization header, never a
    cookie, so the CSRF check only applies to session-authenticated requests
    (the Django admin and the browsable API).
    """

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request):
        authorization = request.META.get("HTTP_AUTHORIZATION", "")
        if authorization.lower().startswith("bearer "):
            request._dont_enforce_csrf_checks = True  # type: ignore[attr-defined]
            request.META.setdefault("CSRF_SKIP_REASON", "jwt-bearer")
        return self.get_response(request)
