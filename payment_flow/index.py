"""Monetary index lookup.

The calculator does not know where index values come from. Callers inject a
provider implementing :class:`MonetaryIndexProvider` and turn its answer into a
:class:`MonetaryIndex` with :func:`lookup_index`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Mapping, Optional, Protocol

from .data_models import IndexPeriod, MonetaryIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexLookup:
    value: Decimal
    period: IndexPeriod
    is_stale: bool


class MonetaryIndexProvider(Protocol):
    def fetch_current_or_latest(self, period: IndexPeriod) -> Optional[IndexLookup]:
        """Value for ``period`` or, failing that, the latest earlier one."""
        ...


class InMemoryIndexProvider:
    """Provider backed by a plain mapping of periods to values."""

    def __init__(self, values: Optional[Mapping[IndexPeriod, Decimal]] = None) -> None:
        self._values: Dict[IndexPeriod, Decimal] = dict(values or {})

    def set_value(self, period: IndexPeriod, value: Decimal) -> None:
        self._values[period] = value

    def fetch_current_or_latest(self, period: IndexPeriod) -> Optional[IndexLookup]:
        if period in self._values:
            return IndexLookup(self._values[period], period, is_stale=False)
        earlier = [p for p in self._values if p < period]
        if not earlier:
            return None
        latest = max(earlier)
        return IndexLookup(self._values[latest], latest, is_stale=True)


def lookup_index(provider: Optional[MonetaryIndexProvider], period: Optional[IndexPeriod] = None) -> Optional[MonetaryIndex]:
    """Ask ``provider`` for the index of ``period`` (default: current month).

    A provider failure is logged and treated like a missing index, so the
    plan is still calculated without the index-derived fields.
    """
    if provider is None:
        return None
    period = period or IndexPeriod.from_date(date.today())
    try:
        found = provider.fetch_current_or_latest(period)
    except Exception:
        logger.exception("Monetary index lookup failed for %s", period)
        return None
    if found is None:
        logger.info("No monetary index available up to %s", period)
        return None
    if found.is_stale:
        logger.warning("Monetary index for %s missing, using %s", period, found.period)
    return MonetaryIndex(value=found.value, period=found.period, requested_period=period)


def staleness_warning(index: MonetaryIndex) -> Optional[str]:
    """Message shown when ``index`` is an older value standing in for the requested month."""
    if not index.is_stale:
        return None
    return (
        f"Índice de {index.requested_period} indisponível; "
        f"utilizando o último valor conhecido ({index.period})."
    )
