from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

QUERY_FIELDS = ("id", "remote_path", "parent_id")


@dataclass(frozen=True)
class InsertOp:
    attributes: Dict[str, Any]


@dataclass(frozen=True)
class UpdateOp:
    record_id: int
    attributes: Dict[str, Any]
    account: str


StoreOperation = Union[InsertOp, UpdateOp]


@dataclass(frozen=True)
class BatchResult:
    generated_id: Optional[int] = None
    affected: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PersistentStore(ABC):
    """Durable record storage partitioned by owner account.

    Implementations raise `StoreUnavailable` when the backend cannot be
    reached and `DuplicateRecordError` when an insert collides with an
    existing (remote_path, account) pair.
    """

    @abstractmethod
    def query(self, account: str, **criteria: Any) -> List[Dict[str, Any]]:
        """Rows of `account` matching every equality criterion, ordered by id."""

    @abstractmethod
    def insert(self, attributes: Dict[str, Any]) -> int:
        """Insert one row and return the generated id."""

    @abstractmethod
    def update(self, record_id: int, attributes: Dict[str, Any], account: str) -> int:
        """Update one row and return the affected count."""

    @abstractmethod
    def delete(self, record_id: int, account: str) -> int:
        """Delete one row and return the affected count."""

    @abstractmethod
    def batch_apply(self, operations: Sequence[StoreOperation]) -> List[BatchResult]:
        """Apply all operations atomically; results follow submission order."""


def check_criteria(criteria: Dict[str, Any]):
    unknown = set(criteria) - set(QUERY_FIELDS)
    if unknown:
        raise ValueError(f"unsupported_query_fields:{','.join(sorted(unknown))}")
