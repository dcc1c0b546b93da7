import logging
from datetime import date
from decimal import Decimal

import pytest

from payment_flow.data_models import IndexPeriod, MonetaryIndex
from payment_flow.index import InMemoryIndexProvider, lookup_index, staleness_warning
from payment_flow.index_store import IndexStore, create_store_from_env


@pytest.fixture
def store(tmp_path):
    return IndexStore(f"sqlite:///{tmp_path / 'index.sqlite3'}")


class BrokenProvider:
    def fetch_current_or_latest(self, period):
        raise ConnectionError("database unreachable")


def test_in_memory_provider_prefers_exact_period():
    provider = InMemoryIndexProvider({IndexPeriod(2025, 1): Decimal("2500"), IndexPeriod(2025, 3): Decimal("2600")})
    found = provider.fetch_current_or_latest(IndexPeriod(2025, 3))
    assert found.value == Decimal("2600")
    assert not found.is_stale

    found = provider.fetch_current_or_latest(IndexPeriod(2025, 2))
    assert found.period == IndexPeriod(2025, 1)
    assert found.is_stale

    assert provider.fetch_current_or_latest(IndexPeriod(2024, 12)) is None


def test_lookup_index_marks_stale_values(caplog):
    provider = InMemoryIndexProvider({IndexPeriod(2025, 1): Decimal("2500")})
    with caplog.at_level(logging.WARNING, logger="payment_flow.index"):
        index = lookup_index(provider, IndexPeriod(2025, 4))
    assert index.value == Decimal("2500")
    assert index.period == IndexPeriod(2025, 1)
    assert index.requested_period == IndexPeriod(2025, 4)
    assert index.is_stale
    assert "missing" in caplog.text


def test_lookup_index_without_provider_or_value():
    assert lookup_index(None) is None
    assert lookup_index(InMemoryIndexProvider(), IndexPeriod(2025, 1)) is None


def test_lookup_index_defaults_to_current_month():
    provider = InMemoryIndexProvider()
    provider.set_value(IndexPeriod.from_date(date.today()), Decimal("2700"))
    index = lookup_index(provider)
    assert index.value == Decimal("2700")
    assert not index.is_stale


def test_failing_provider_is_treated_as_missing(caplog):
    with caplog.at_level(logging.ERROR, logger="payment_flow.index"):
        assert lookup_index(BrokenProvider(), IndexPeriod(2025, 1)) is None
    assert "lookup failed" in caplog.text


def test_store_set_and_replace(store):
    period = IndexPeriod(2025, 1)
    assert store.get_value(period) is None
    store.set_value(period, Decimal("2500.50"))
    assert store.get_value(period) == Decimal("2500.50")
    store.set_value(period, Decimal("2510"))
    assert store.get_value(period) == Decimal("2510")
    assert len(store.list_values()) == 1


@pytest.mark.parametrize("period, value", [(IndexPeriod(2025, 13), Decimal("1")), (IndexPeriod(2025, 1), Decimal("0"))])
def test_store_rejects_invalid_values(store, period, value):
    with pytest.raises(ValueError):
        store.set_value(period, value)


def test_store_fetches_latest_earlier_value(store):
    store.set_value(IndexPeriod(2024, 11), Decimal("2400"))
    store.set_value(IndexPeriod(2025, 2), Decimal("2550"))

    found = store.fetch_current_or_latest(IndexPeriod(2025, 2))
    assert found.value == Decimal("2550")
    assert not found.is_stale

    found = store.fetch_current_or_latest(IndexPeriod(2025, 1))
    assert found.period == IndexPeriod(2024, 11)
    assert found.is_stale

    assert store.fetch_current_or_latest(IndexPeriod(2024, 10)) is None


def test_store_is_a_provider(store):
    store.set_value(IndexPeriod(2025, 1), Decimal("2500"))
    index = lookup_index(store, IndexPeriod(2025, 3))
    assert index.value == Decimal("2500")
    assert index.is_stale


def test_store_listing_and_removal(store):
    store.set_value(IndexPeriod(2024, 12), Decimal("2450"))
    store.set_value(IndexPeriod(2025, 1), Decimal("2500"))
    listed = store.list_values()
    assert [row["period"] for row in listed] == ["01/2025", "12/2024"]
    assert Decimal(listed[0]["value"]) == Decimal("2500")

    store.remove_value(IndexPeriod(2025, 1))
    store.remove_value(IndexPeriod(2030, 1))
    assert [row["period"] for row in store.list_values()] == ["12/2024"]


def test_current_period_status(store):
    assert store.is_current_period_missing(date(2025, 1, 15))
    store.set_value(IndexPeriod(2025, 1), Decimal("2500"))
    assert not store.is_current_period_missing(date(2025, 1, 15))
    assert store.is_current_period_missing(date(2025, 2, 1))


def test_create_store_from_env(tmp_path):
    store = create_store_from_env(f"sqlite:///{tmp_path / 'env.sqlite3'}")
    assert store.list_values() == []


def test_staleness_warning():
    fresh = MonetaryIndex(value=Decimal("2500"), period=IndexPeriod(2025, 1), requested_period=IndexPeriod(2025, 1))
    assert staleness_warning(fresh) is None
    assert staleness_warning(MonetaryIndex(value=Decimal("2500"), period=IndexPeriod(2025, 1))) is None
    stale = MonetaryIndex(value=Decimal("2500"), period=IndexPeriod(2024, 12), requested_period=IndexPeriod(2025, 2))
    assert staleness_warning(stale) == (
        "Índice de 02/2025 indisponível; utilizando o último valor conhecido (12/2024)."
    )
