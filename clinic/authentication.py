"""
Custom authentication backend for token-based auth.

This module defines a subclass of Django REST framework's
``TokenAuthentication`` that simply overrides the ``keyword`` used in
the ``Authorization`` header.  JWT bearer tokens are handled by
SimpleJWT's ``JWTAuthentication`` which is listed next to this class in
the REST framework settings.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """Custom token authentication using the ``Token`` keyword."""

    keyword = 'Token'
