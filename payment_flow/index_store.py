"""Persistence layer for monthly monetary index values.

Index values (one per calendar month) are maintained by an administrator and
read by the calculator through :meth:`IndexStore.fetch_current_or_latest`,
which makes the store a :class:`~payment_flow.index.MonetaryIndexProvider`.
It defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, DateTime, Integer, Numeric, UniqueConstraint, and_, create_engine, or_, select
from sqlalchemy.orm import declarative_base, sessionmaker

from .data_models import IndexPeriod
from .index import IndexLookup

Base = declarative_base()


class IndexValueModel(Base):
    __tablename__ = "monetary_index_values"
    __table_args__ = (UniqueConstraint("year", "month", name="uq_index_period"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    value = Column(Numeric(18, 6), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class IndexStore:
    """Database-backed monetary index table."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def set_value(self, period: IndexPeriod, value: Decimal) -> None:
        """Insert or replace the value for ``period``."""
        if not 1 <= period.month <= 12:
            raise ValueError(f"Invalid month: {period.month}")
        if value <= 0:
            raise ValueError("Index value must be positive")
        with self._session_factory() as session:
            row = self._find(session, period)
            if row is None:
                session.add(IndexValueModel(year=period.year, month=period.month, value=value))
            else:
                row.value = value
            session.commit()

    def get_value(self, period: IndexPeriod) -> Optional[Decimal]:
        with self._session_factory() as session:
            row = self._find(session, period)
            return Decimal(row.value) if row is not None else None

    def remove_value(self, period: IndexPeriod) -> None:
        with self._session_factory() as session:
            row = self._find(session, period)
            if row is not None:
                session.delete(row)
                session.commit()

    def list_values(self) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows = session.execute(
                select(IndexValueModel).order_by(IndexValueModel.year.desc(), IndexValueModel.month.desc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def fetch_current_or_latest(self, period: IndexPeriod) -> Optional[IndexLookup]:
        """Value for ``period``, or the latest one recorded before it."""
        with self._session_factory() as session:
            row = session.execute(
                select(IndexValueModel)
                .where(
                    or_(
                        IndexValueModel.year < period.year,
                        and_(IndexValueModel.year == period.year, IndexValueModel.month <= period.month),
                    )
                )
                .order_by(IndexValueModel.year.desc(), IndexValueModel.month.desc())
                .limit(1)
            ).scalars().first()
            if row is None:
                return None
            found = IndexPeriod(year=row.year, month=row.month)
            return IndexLookup(value=Decimal(row.value), period=found, is_stale=found != period)

    def is_current_period_missing(self, today: Optional[date] = None) -> bool:
        """True when no value has been recorded for the month of ``today``."""
        today = today or date.today()
        return self.get_value(IndexPeriod.from_date(today)) is None

    @staticmethod
    def _find(session, period: IndexPeriod) -> Optional[IndexValueModel]:
        return session.execute(
            select(IndexValueModel).where(
                IndexValueModel.year == period.year, IndexValueModel.month == period.month
            )
        ).scalars().first()

    @staticmethod
    def _to_dict(row: IndexValueModel) -> Dict[str, Any]:
        return {
            "period": str(IndexPeriod(year=row.year, month=row.month)),
            "year": row.year,
            "month": row.month,
            "value": str(row.value),
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: str | None) -> IndexStore:
    return IndexStore(url or "sqlite:///monetary_index.sqlite3")
