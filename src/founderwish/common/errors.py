from __future__ import annotations


class FounderWishError(RuntimeError):
    """Base error for the FounderWish SDK."""


class NotConfiguredError(FounderWishError):
    """An operation ran before `configure` was ever called."""

    def __init__(self, message: str = "FounderWish is not configured. Call FounderWish.configure(board_key) first.") -> None:
        super().__init__(message)


class InvalidResponseError(FounderWishError):
    """Transport returned nothing usable, or the payload shape is unusable."""

    def __init__(self, message: str = "Invalid response from server.") -> None:
        super().__init__(message)


class ServerError(FounderWishError):
    """Non-2xx HTTP status or an explicit decode failure."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


__all__ = [
    "FounderWishError",
    "InvalidResponseError",
    "NotConfiguredError",
    "ServerError",
]
