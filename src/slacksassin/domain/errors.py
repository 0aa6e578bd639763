"""Domain exceptions."""


class SlackSassinError(Exception):
    """Base exception for message processing errors."""


class StoreError(SlackSassinError):
    """Raised when the message store cannot read or persist a record."""


class MessageNotFoundError(SlackSassinError):
    """Raised when a message id does not exist in the store."""

    def __init__(self, message_id: str) -> None:
        super().__init__(f"Message not found: {message_id}")
        self.message_id = message_id


class InvalidTransitionError(SlackSassinError):
    """Raised when a status change is not permitted by the lifecycle."""

    def __init__(self, message_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move message {message_id} from '{current}' to '{target}'"
        )
        self.message_id = message_id
        self.current = current
        self.target = target


class GenerationError(SlackSassinError):
    """Base exception for reply generation failures."""


class BackendUnreachableError(GenerationError):
    """Raised when the text-generation backend does not answer."""

    def __init__(self, base_url: str | None) -> None:
        super().__init__(f"Generation backend unreachable at {base_url}")
        self.base_url = base_url


class NoModelConfiguredError(GenerationError):
    """Raised when no generation model identifier is configured."""

    def __init__(self) -> None:
        super().__init__("No generation model configured")


class GenerationTimeoutError(GenerationError):
    """Raised when the backend does not finish within the timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Generation timed out after {timeout:g} seconds")
        self.timeout = timeout


class EmptyResponseError(GenerationError):
    """Raised when the backend produced no user-visible text."""

    def __init__(self) -> None:
        super().__init__("Generation backend returned an empty response")


class DeliveryError(SlackSassinError):
    """Base exception for outbound relay failures."""


class RelayNotConfiguredError(DeliveryError):
    """Raised when no relay endpoint is configured."""

    def __init__(self) -> None:
        super().__init__("Relay webhook URL not configured")


class DeliveryFailedError(DeliveryError):
    """Raised when the relay did not accept the reply."""

    def __init__(self, reason: str, status: int | None = None) -> None:
        super().__init__(f"Failed to deliver reply: {reason}")
        self.reason = reason
        self.status = status
