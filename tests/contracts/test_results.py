"""Tests for operation outcome types and errors."""

import pytest

from doclib.contracts import DocumentNotFoundError, FlagOperation, NotStartedError, UpdatedResult


class TestUpdatedResult:
    """Tests for UpdatedResult."""

    def test_nothing(self) -> None:
        result = UpdatedResult.nothing()

        assert result.matched_count == 0
        assert result.modified_count == 0
        assert not result.modified

    def test_from_rowcount(self) -> None:
        result = UpdatedResult.from_rowcount(1)

        assert result == UpdatedResult(matched_count=1, modified_count=1)
        assert result.modified

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            UpdatedResult(matched_count=-1, modified_count=0)


class TestNotStartedError:
    """NotStartedError carries the failed transition."""

    def test_message(self) -> None:
        error = NotStartedError("end", "ner", "doc-1")

        assert str(error) == "Cannot 'end' as flag 'ner' has not been started"

    def test_attributes(self) -> None:
        error = NotStartedError(FlagOperation.RESET.value, "ner", "doc-1")

        assert error.operation == "reset"
        assert error.key == "ner"
        assert error.document_id == "doc-1"

    def test_is_plain_exception(self) -> None:
        assert issubclass(NotStartedError, Exception)
        assert not issubclass(NotStartedError, ValueError)


class TestDocumentNotFoundError:
    def test_message(self) -> None:
        error = DocumentNotFoundError("doc-9")

        assert str(error) == "Document 'doc-9' not found"
        assert error.document_id == "doc-9"
