from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from domain.models import Category, Transaction

TxnTypeLiteral = Literal["income", "expense"]


class DateRange(BaseModel):
    start: date = Field(description="Start date in YYYY-MM-DD format, e.g. 2024-03-01.")
    end: date = Field(description="End date in YYYY-MM-DD format, e.g. 2024-03-31.")

    @field_validator("start", "end", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        if isinstance(value, date):
            return value
        if not isinstance(value, str):
            return value

        text = value.strip()
        if not text:
            return value

        # Canonical format first.
        for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%m-%d-%Y"):
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("date_range.start must be <= date_range.end")
        return self


class TransactionQuery(BaseModel):
    """
    Record store filter.

    All fields are optional:
      - date_range (inclusive on both ends)
      - txn_type (income or expense)
      - query (case-insensitive match on description or category name)
    """

    date_range: Optional[DateRange] = None
    txn_type: Optional[TxnTypeLiteral] = None
    query: Optional[str] = None


class TransactionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    txn_type: TxnTypeLiteral = Field(alias="type")
    amount: Decimal = Field(gt=0)
    posted_on: date = Field(alias="date")
    description: str = Field(min_length=1)
    category_id: Optional[str] = None
    receipt_image_url: Optional[str] = Field(default=None, alias="receipt_image")

    @field_validator("description")
    @classmethod
    def strip_description(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("description must not be blank")
        return value


class TransactionUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    txn_type: Optional[TxnTypeLiteral] = Field(default=None, alias="type")
    amount: Optional[Decimal] = Field(default=None, gt=0)
    posted_on: Optional[date] = Field(default=None, alias="date")
    description: Optional[str] = None
    category_id: Optional[str] = None
    receipt_image_url: Optional[str] = Field(default=None, alias="receipt_image")

    @field_validator("description")
    @classmethod
    def strip_description(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("description must not be blank")
        return value


class CategoryCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    txn_type: TxnTypeLiteral = Field(alias="type")

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class CategoryOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    txn_type: TxnTypeLiteral = Field(alias="type")

    @classmethod
    def from_domain(cls, category: Category) -> "CategoryOut":
        return cls(id=category.id, name=category.name, txn_type=category.txn_type.value)


class TransactionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    txn_type: str = Field(alias="type")
    amount: float
    posted_on: date = Field(alias="date")
    description: str
    category_id: Optional[str] = None
    category: Optional[CategoryOut] = None
    receipt_image_url: Optional[str] = Field(default=None, alias="receipt_image")

    @classmethod
    def from_domain(cls, txn: Transaction) -> "TransactionOut":
        return cls(
            id=txn.id,
            txn_type=txn.txn_type.value,
            amount=float(txn.amount),
            posted_on=txn.posted_on,
            description=txn.description,
            category_id=txn.category_id,
            category=CategoryOut.from_domain(txn.category) if txn.category else None,
            receipt_image_url=txn.receipt_image_url,
        )


class ReportRequest(BaseModel):
    request_id: str
    report: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ReportResponse(BaseModel):
    request_id: str
    report: str
    ok: bool = True
    result: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)


class EnsureBucketRequest(BaseModel):
    bucket_name: Optional[str] = Field(default=None, alias="bucketName")
    public: bool = True
    size_limit: Optional[int] = Field(default=None, gt=0)
    allowed_types: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
