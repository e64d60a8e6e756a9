from __future__ import annotations

__all__ = [
    "ReadingLampError",
    "ConfigurationError",
    "SynthesisError",
    "InvalidCredentialError",
    "QuotaExceededError",
    "RateLimitedError",
    "RequestRejectedError",
    "MergeError",
    "MergeToolNotFoundError",
]


class ReadingLampError(Exception):
    """
    Base class for every error the pipeline reports to the user.
    """


class ConfigurationError(ReadingLampError):
    pass


class SynthesisError(ReadingLampError):
    """
    Failure reported by a text-to-speech engine.

    ``retryable`` tells the retry policy whether another attempt can succeed.
    Generic failures (network, timeouts, server errors) are retryable.
    """

    retryable = True

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail


class InvalidCredentialError(SynthesisError):
    retryable = False

    def __init__(self, detail: str | None = None) -> None:
        super().__init__("Invalid OpenAI API key", detail=detail)


class QuotaExceededError(SynthesisError):
    retryable = False

    def __init__(self, detail: str | None = None) -> None:
        super().__init__("OpenAI API quota exceeded", detail=detail)


class RateLimitedError(SynthesisError):
    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            "OpenAI API rate limit exceeded. Please try again later.", detail=detail
        )


class RequestRejectedError(SynthesisError):
    retryable = False


class MergeError(ReadingLampError):
    pass


class MergeToolNotFoundError(MergeError):
    pass
