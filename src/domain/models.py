from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


@dataclass
class Category:
    id: str
    name: str
    txn_type: TransactionType


@dataclass
class Transaction:
    id: str
    posted_on: date
    description: str
    amount: Decimal
    txn_type: TransactionType = TransactionType.EXPENSE
    category: Category | None = None
    category_id: str | None = None
    receipt_image_url: str | None = None

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category is not None else None


@dataclass
class CategoryBucket:
    category: str
    amount: Decimal
    percent: float = 0.0


@dataclass
class DayBucket:
    day: str
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")


@dataclass
class MonthBucket:
    name: str
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")


@dataclass
class MonthlyReport:
    income: list[CategoryBucket] = field(default_factory=list)
    expenses: list[CategoryBucket] = field(default_factory=list)
    daily_transactions: list[DayBucket] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.income or self.expenses or self.daily_transactions)


@dataclass
class DashboardSummary:
    income: Decimal
    expenses: Decimal
    balance: Decimal
    savings_rate: int


@dataclass(frozen=True)
class BucketOptions:
    public: bool = True
    size_limit: int | None = None
    allowed_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class BucketInfo:
    name: str
    public: bool = True
    size_limit: int | None = None
    allowed_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class StoredObject:
    bucket: str
    path: str
    url: str
    size: int
    content_type: str | None = None
