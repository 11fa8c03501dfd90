"""Exception taxonomy shared by the model client, stores and admin surface."""

GENERIC_API_ERROR = "An API error occurred. Please try again in a moment."


class CampusBotError(Exception):
    """Base class for all campus bot errors."""


class ModelError(CampusBotError):
    """A model call failed. ``user_message`` is safe to show in the chat."""

    user_message = GENERIC_API_ERROR


class TransientNetworkError(ModelError):
    """Non-success HTTP status, transport failure or unreadable body. Retried."""


class ModelRequestError(ModelError):
    """The request could not be sent at all (bad endpoint URL, unencodable body). Not retried."""


class ExhaustedRetriesError(ModelError):
    """Every attempt allowed by the retry policy failed."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Model call failed after {attempts} attempt(s)")
        self.attempts = attempts


class BlockedContentError(ModelError):
    """The service refused the prompt on safety grounds."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Prompt blocked: {reason}")
        self.reason = reason

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f"My apologies, but I cannot respond to that due to: {self.reason}"


class EmptyResponseError(ModelError):
    """The service answered without any candidate text."""

    user_message = "Sorry, I received an empty response."


class MalformedStructuredResponseError(ModelError):
    """A schema-mode response was not a JSON object."""

    user_message = "Error: Optimizer AI failed to return valid JSON. Please try again."


class StoreWriteError(CampusBotError):
    """A write to the document store failed; the remote value is unchanged."""


class ValidationError(CampusBotError):
    """Input rejected before any network or store call."""
