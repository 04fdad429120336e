"""
Error types shared by the conversation controller and the service adapters.
"""


class BotError(Exception):
    """Base class for all bot errors."""


class ConfigurationError(BotError):
    """Required configuration is missing; the process must not start."""


class SchemaValidationError(BotError):
    """Input failed schema validation. Carries per-field messages."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class AdapterError(BotError):
    """A third-party call failed or timed out."""

    def __init__(self, service: str, message: str, retryable: bool = True):
        self.service = service
        self.retryable = retryable
        super().__init__(f"{service}: {message}")


class QualityGateFailure(BotError):
    """Plagiarism score stayed above the threshold after all regenerations."""

    def __init__(self, score: float, attempts: int):
        self.score = score
        self.attempts = attempts
        super().__init__(
            f"plagiarism score {score:.2f} above threshold after {attempts} attempts"
        )


class StateError(BotError):
    """An event arrived that makes no sense for the current phase."""
