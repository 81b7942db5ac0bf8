"""SQLAlchemy-backed record store.

The engine and session factory belong to the store instance; callers create
one store at process start and pass it to whatever needs it.

Usage
-----
store = SqlRecordStore("sqlite+pysqlite:///finance.db", create_schema=True)
store.list_transactions()
store.close()
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Numeric, String, Text, create_engine, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, sessionmaker

from domain.errors import RecordNotFoundError, RecordStoreError, ValidationError
from domain.models import Category, Transaction, TransactionType
from domain.schemas import TransactionCreate, TransactionQuery, TransactionUpdate
from infrastructure.record_store.provider import RecordStore

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class CategoryRow(Base):
    __tablename__ = "categories"
    __table_args__ = (CheckConstraint("type IN ('income', 'expense')", name="ck_categories_type"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    txn_type: Mapped[str] = mapped_column("type", String(16), nullable=False)


class TransactionRow(Base):
    __tablename__ = "transactions"
    __table_args__ = (CheckConstraint("type IN ('income', 'expense')", name="ck_transactions_type"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    txn_type: Mapped[str] = mapped_column("type", String(16), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    posted_on: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    receipt_image_url: Mapped[str | None] = mapped_column("receipt_image", Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    category: Mapped[CategoryRow | None] = relationship(lazy="joined")


def _to_category(row: CategoryRow) -> Category:
    return Category(id=row.id, name=row.name, txn_type=TransactionType(row.txn_type))


def _to_transaction(row: TransactionRow) -> Transaction:
    return Transaction(
        id=row.id,
        posted_on=row.posted_on,
        description=row.description or "",
        amount=Decimal(row.amount) if row.amount is not None else Decimal("0"),
        txn_type=TransactionType(row.txn_type),
        category=_to_category(row.category) if row.category is not None else None,
        category_id=row.category_id,
        receipt_image_url=row.receipt_image_url,
    )


class SqlRecordStore(RecordStore):
    name = "sql"

    def __init__(self, database_url: str, *, create_schema: bool = False, echo: bool = False) -> None:
        if not database_url:
            raise RecordStoreError("database_url is required for SqlRecordStore")
        try:
            self._engine = create_engine(database_url, pool_pre_ping=True, echo=echo)
            if create_schema:
                Base.metadata.create_all(bind=self._engine)
        except SQLAlchemyError as exc:
            raise RecordStoreError(f"Unable to initialize database: {exc}") from exc
        self._session_maker = sessionmaker(bind=self._engine, expire_on_commit=False, class_=Session)
        logger.info("SQL record store ready dialect=%s", self._engine.dialect.name)

    def close(self) -> None:
        self._engine.dispose()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""

        session = self._session_maker()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("SQL record store operation failed")
            raise RecordStoreError(f"Database operation failed: {exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ---- transactions ----
    def list_transactions(self, query: TransactionQuery | None = None) -> list[Transaction]:
        stmt = select(TransactionRow).outerjoin(CategoryRow, TransactionRow.category_id == CategoryRow.id)
        if query is not None:
            if query.date_range is not None:
                stmt = stmt.where(
                    TransactionRow.posted_on >= query.date_range.start,
                    TransactionRow.posted_on <= query.date_range.end,
                )
            if query.txn_type:
                stmt = stmt.where(TransactionRow.txn_type == query.txn_type)
            text = (query.query or "").strip().lower()
            if text:
                pattern = f"%{text}%"
                stmt = stmt.where(
                    or_(
                        func.lower(TransactionRow.description).like(pattern),
                        func.lower(CategoryRow.name).like(pattern),
                    )
                )
        stmt = stmt.order_by(TransactionRow.posted_on.desc(), TransactionRow.created_at.desc())

        with self.session_scope() as session:
            rows = session.scalars(stmt).unique().all()
            transactions = [_to_transaction(row) for row in rows]
        logger.debug("SQL store listed transactions count=%d", len(transactions))
        return transactions

    def get_transaction(self, transaction_id: str) -> Transaction:
        with self.session_scope() as session:
            row = self._get_row(session, transaction_id)
            return _to_transaction(row)

    def add_transaction(self, payload: TransactionCreate) -> Transaction:
        with self.session_scope() as session:
            self._check_category(session, payload.category_id, payload.txn_type)
            row = TransactionRow(
                id=uuid.uuid4().hex,
                txn_type=payload.txn_type,
                amount=payload.amount,
                posted_on=payload.posted_on,
                description=payload.description,
                category_id=payload.category_id,
                receipt_image_url=payload.receipt_image_url,
            )
            session.add(row)
            session.flush()
            session.refresh(row)
            txn = _to_transaction(row)
        logger.info("SQL store added transaction id=%s type=%s", txn.id, txn.txn_type.value)
        return txn

    def update_transaction(self, transaction_id: str, payload: TransactionUpdate) -> Transaction:
        changes = payload.model_dump(exclude_unset=True)
        with self.session_scope() as session:
            row = self._get_row(session, transaction_id)
            for key, value in changes.items():
                if value is None and key in ("txn_type", "amount", "posted_on", "description"):
                    continue
                setattr(row, key, value)
            self._check_category(session, row.category_id, row.txn_type)
            session.flush()
            session.refresh(row)
            txn = _to_transaction(row)
        logger.info("SQL store updated transaction id=%s fields=%s", txn.id, sorted(changes))
        return txn

    def delete_transaction(self, transaction_id: str) -> None:
        with self.session_scope() as session:
            row = self._get_row(session, transaction_id)
            session.delete(row)
        logger.info("SQL store deleted transaction id=%s", transaction_id)

    # ---- categories ----
    def list_categories(self, txn_type: TransactionType | str | None = None) -> list[Category]:
        stmt = select(CategoryRow).order_by(CategoryRow.name)
        if txn_type:
            stmt = stmt.where(CategoryRow.txn_type == TransactionType(txn_type).value)
        with self.session_scope() as session:
            return [_to_category(row) for row in session.scalars(stmt).all()]

    def add_category(self, name: str, txn_type: TransactionType | str) -> Category:
        row = CategoryRow(id=uuid.uuid4().hex, name=name, txn_type=TransactionType(txn_type).value)
        with self.session_scope() as session:
            session.add(row)
            session.flush()
            return _to_category(row)

    # ---- helpers ----
    def _get_row(self, session: Session, transaction_id: str) -> TransactionRow:
        row = session.get(TransactionRow, str(transaction_id))
        if row is None:
            raise RecordNotFoundError(f"Transaction not found: {transaction_id}")
        return row

    def _check_category(self, session: Session, category_id: str | None, txn_type: str) -> None:
        if not category_id:
            return
        category = session.get(CategoryRow, category_id)
        if category is None or category.txn_type != txn_type:
            raise ValidationError("Invalid category_id provided.")
