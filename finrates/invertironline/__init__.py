"""
InvertirOnline broker collaborators (token provider, quote source).

These feed prices into an application; the finance primitives never import them.
"""
from .auth import AuthError, AuthProvider, BrokerError, Credentials, TokenCache
from .quotes import QuoteData, QuoteError, QuotePunta, fetch_quote

__all__ = [
    "AuthError",
    "AuthProvider",
    "BrokerError",
    "Credentials",
    "TokenCache",
    "QuoteData",
    "QuoteError",
    "QuotePunta",
    "fetch_quote",
]
