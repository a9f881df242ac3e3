"""Domain exceptions translated to HTTP responses in main."""


class NotFoundError(Exception):
    """A referenced entity does not exist (rendered as 404)."""


class AIServiceError(Exception):
    """An AI provider call failed and was not retried (rendered as 500)."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(message)
        self.operation = operation
