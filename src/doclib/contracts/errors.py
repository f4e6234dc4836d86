"""Exceptions raised by flag operations."""


class NotStartedError(Exception):
    """Raised when a transition needs an existing flag and there is none.

    This signals a workflow-ordering bug in the caller (ending, erroring or
    resetting a stage that was never queued or started). It is never retried.

    Attributes:
        operation: Transition that was attempted ("end", "error", ...)
        key: Flag key of the context
        document_id: Document the transition was attempted on
    """

    def __init__(self, operation: str, key: str, document_id: str) -> None:
        self.operation = operation
        self.key = key
        self.document_id = document_id
        super().__init__(f"Cannot '{operation}' as flag '{key}' has not been started")


class DocumentNotFoundError(Exception):
    """Raised when a document id does not exist in the store."""

    def __init__(self, document_id: str) -> None:
        self.document_id = document_id
        super().__init__(f"Document '{document_id}' not found")
