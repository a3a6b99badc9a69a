# app/exceptions.py
"""
Error hierarchy for the parking provider client.

Storage failures are plain SQLAlchemyError and are not wrapped here;
status-store lookup failures never leave the status resolver.
"""


class ProviderError(Exception):
    """Base exception for all provider errors."""


class ProviderAuthenticationError(ProviderError):
    """Login rejected (bad credentials / provider errorCode) or login request failed."""

    def __init__(self, message: str, *, code: str = ""):
        self.code = code
        super().__init__(message)


class ProviderSessionExpired(ProviderAuthenticationError):
    """
    The provider answered a data request with its HTML login page.
    Caught inside the client to trigger one re-login + retry.
    """


class ProviderFetchError(ProviderError):
    """HTTP-level failure or unparseable response while fetching movements."""

    def __init__(self, message: str, *, status_code: int = None, endpoint: str = ""):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)
