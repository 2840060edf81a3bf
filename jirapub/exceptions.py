"""Package-specific exception types."""

from __future__ import annotations


class PublishError(ValueError):
    """Base class for errors raised while publishing an issue.

    The markup renderer never raises; these cover the issue data around it.
    """


class IssueFormatError(PublishError):
    """Raised when an issue document does not have the expected shape.

    Args:
        key: Issue key when known.
        reason: What is missing or malformed.
    """

    def __init__(self, key: str | None, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        if self.key is None:
            return f"Issue did not have expected format: {self.reason}"
        return f"Issue {self.key} did not have expected format: {self.reason}"


class IssueNotPublicError(PublishError):
    """Raised when an issue does not carry the public label.

    Args:
        key: Issue key.
        label: Label that marks an issue as public.
    """

    def __init__(self, key: str, label: str):
        self.key = key
        self.label = label
        super().__init__(f"Issue {self.key} is not public (missing label {self.label!r})")


class IssueNotFoundError(PublishError):
    """Raised when an issue is absent from the store."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Issue {self.key} not found")


class IssueStoreError(PublishError):
    """Raised when an issue store file cannot be read or decoded."""
