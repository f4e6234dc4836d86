"""Outcome types returned by flag operations."""

from dataclasses import dataclass


@dataclass(frozen=True)
class UpdatedResult:
    """Outcome of a single conditional store statement.

    A zero ``modified_count`` is not an error: it means the filter matched
    nothing, typically because another writer already moved the flag on or
    the flag was already in the target state.
    """

    matched_count: int
    modified_count: int

    def __post_init__(self) -> None:
        if self.matched_count < 0 or self.modified_count < 0:
            raise ValueError(f"Counts must be non-negative, got matched={self.matched_count} modified={self.modified_count}")

    @classmethod
    def nothing(cls) -> "UpdatedResult":
        """Result for an operation that did not touch the store."""
        return cls(matched_count=0, modified_count=0)

    @classmethod
    def from_rowcount(cls, rowcount: int) -> "UpdatedResult":
        return cls(matched_count=rowcount, modified_count=rowcount)

    @property
    def modified(self) -> bool:
        return self.modified_count > 0
