from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import date
from typing import Iterable

from domain.errors import RecordNotFoundError, ValidationError
from domain.models import Category, Transaction, TransactionType
from domain.schemas import DateRange, TransactionCreate, TransactionQuery, TransactionUpdate
from infrastructure.record_store.provider import RecordStore

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


def transaction_matches(txn: Transaction, query: TransactionQuery | None) -> bool:
    if query is None:
        return True

    if not _match_date_range(txn.posted_on, query.date_range):
        return False

    if query.txn_type and txn.txn_type.value != query.txn_type:
        return False

    text = (query.query or "").strip().lower()
    if text:
        category_name = (txn.category_name or "").lower()
        if text not in txn.description.lower() and text not in category_name:
            return False

    return True


def _match_date_range(posted_on: date, date_range: DateRange | None) -> bool:
    if date_range is None:
        return True
    if posted_on < date_range.start:
        return False
    if posted_on > date_range.end:
        return False
    return True


class InMemoryRecordStore(RecordStore):
    """Dict-backed store used when no database is configured, and in tests.

    FastAPI runs sync routes in a threadpool, so every access goes through one
    re-entrant lock.
    """

    name = "memory"

    def __init__(
        self,
        categories: Iterable[Category] | None = None,
        transactions: Iterable[Transaction] | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._categories: dict[str, Category] = {}
        self._transactions: dict[str, Transaction] = {}
        for category in categories or []:
            self._categories[category.id] = category
        for txn in transactions or []:
            self._transactions[txn.id] = txn

    # ---- transactions ----
    def list_transactions(self, query: TransactionQuery | None = None) -> list[Transaction]:
        with self._lock:
            joined = [self._with_category(t) for t in self._transactions.values()]
        rows = [t for t in joined if transaction_matches(t, query)]
        rows.sort(key=lambda t: t.posted_on, reverse=True)
        logger.debug("Memory store listed transactions count=%d", len(rows))
        return rows

    def get_transaction(self, transaction_id: str) -> Transaction:
        with self._lock:
            txn = self._transactions.get(str(transaction_id))
            if txn is None:
                raise RecordNotFoundError(f"Transaction not found: {transaction_id}")
            return self._with_category(txn)

    def add_transaction(self, payload: TransactionCreate) -> Transaction:
        txn_type = TransactionType(payload.txn_type)
        with self._lock:
            self._check_category(payload.category_id, txn_type)
            txn = Transaction(
                id=_new_id(),
                posted_on=payload.posted_on,
                description=payload.description,
                amount=payload.amount,
                txn_type=txn_type,
                category_id=payload.category_id,
                receipt_image_url=payload.receipt_image_url,
            )
            self._transactions[txn.id] = txn
            logger.info("Memory store added transaction id=%s type=%s", txn.id, txn.txn_type.value)
            return self._with_category(txn)

    def update_transaction(self, transaction_id: str, payload: TransactionUpdate) -> Transaction:
        changes = payload.model_dump(exclude_unset=True)
        if "txn_type" in changes and changes["txn_type"] is not None:
            changes["txn_type"] = TransactionType(changes["txn_type"])
        for key in ("txn_type", "amount", "posted_on", "description"):
            if key in changes and changes[key] is None:
                changes.pop(key)

        with self._lock:
            current = self.get_transaction(transaction_id)
            updated = replace(current, category=None, **changes)
            self._check_category(updated.category_id, updated.txn_type)
            self._transactions[updated.id] = updated
            logger.info("Memory store updated transaction id=%s fields=%s", updated.id, sorted(changes))
            return self._with_category(updated)

    def delete_transaction(self, transaction_id: str) -> None:
        with self._lock:
            if self._transactions.pop(str(transaction_id), None) is None:
                raise RecordNotFoundError(f"Transaction not found: {transaction_id}")
        logger.info("Memory store deleted transaction id=%s", transaction_id)

    # ---- categories ----
    def list_categories(self, txn_type: TransactionType | str | None = None) -> list[Category]:
        wanted = TransactionType(txn_type) if txn_type else None
        with self._lock:
            categories = [c for c in self._categories.values() if wanted is None or c.txn_type == wanted]
        return sorted(categories, key=lambda c: c.name)

    def add_category(self, name: str, txn_type: TransactionType | str) -> Category:
        category = Category(id=_new_id(), name=name, txn_type=TransactionType(txn_type))
        with self._lock:
            self._categories[category.id] = category
        return category

    # ---- helpers ----
    def _with_category(self, txn: Transaction) -> Transaction:
        category = self._categories.get(txn.category_id) if txn.category_id else None
        return replace(txn, category=category)

    def _check_category(self, category_id: str | None, txn_type: TransactionType) -> None:
        if not category_id:
            return
        category = self._categories.get(category_id)
        if category is None or category.txn_type != txn_type:
            raise ValidationError("Invalid category_id provided.")
