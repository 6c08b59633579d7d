from __future__ import annotations


class InvalidPathError(ValueError):
    """Raised when a path/doc_id combination cannot address a document."""

    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(message)
        self.path = path


class DocumentOperationError(RuntimeError):
    """Base error for failed driver calls.

    The driver exception is chained as ``__cause__``.
    """

    action = "operate on"

    def __init__(self, path: str, cause: BaseException, *, doc_id: str | None = None) -> None:
        target = f"{path} (doc_id={doc_id})" if doc_id else path
        super().__init__(f"Failed to {self.action} document at path {target}: {cause}")
        self.path = path
        self.doc_id = doc_id


class WriteError(DocumentOperationError):
    action = "write"


class UpdateError(WriteError):
    action = "update"


class DocumentNotFoundError(UpdateError):
    """Raised when a partial update targets a document that does not exist."""


class UpsertError(WriteError):
    action = "upsert"


class ReadError(DocumentOperationError):
    action = "read"


class DeleteError(DocumentOperationError):
    action = "delete"


class QueryError(DocumentOperationError):
    action = "query"
