from __future__ import annotations

from abc import ABC, abstractmethod

from domain.models import Category, Transaction, TransactionType
from domain.schemas import TransactionCreate, TransactionQuery, TransactionUpdate


class RecordStore(ABC):
    """Base contract for transaction and category persistence."""

    name: str = "record_store"

    @abstractmethod
    def list_transactions(self, query: TransactionQuery | None = None) -> list[Transaction]:
        """Matching transactions, newest first. An empty list is a valid result."""
        raise NotImplementedError

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Transaction:
        raise NotImplementedError

    @abstractmethod
    def add_transaction(self, payload: TransactionCreate) -> Transaction:
        raise NotImplementedError

    @abstractmethod
    def update_transaction(self, transaction_id: str, payload: TransactionUpdate) -> Transaction:
        raise NotImplementedError

    @abstractmethod
    def delete_transaction(self, transaction_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_categories(self, txn_type: TransactionType | str | None = None) -> list[Category]:
        raise NotImplementedError

    @abstractmethod
    def add_category(self, name: str, txn_type: TransactionType | str) -> Category:
        raise NotImplementedError
