from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from payment_flow.config import Settings
from payment_flow.data_models import (
    AmountKind,
    DownPaymentSpec,
    InstallmentSpec,
    LumpSumSpec,
    PaymentPlanInput,
    PropertyDetails,
)


@pytest.fixture
def reference_plan():
    """500k property: 20 % down in 2x, 10 % at construction start, 24
    auto-calculated monthly installments and 10 % on keys."""
    return PaymentPlanInput(
        property_value=Decimal("500000"),
        client_name="Maria da Silva",
        delivery_date=date(2027, 1, 10),
        down_payment=DownPaymentSpec(
            kind=AmountKind.PERCENTAGE,
            percentage=Decimal("20"),
            installment_count=2,
            first_due_date=date(2025, 1, 10),
        ),
        construction_start=LumpSumSpec(kind=AmountKind.PERCENTAGE, percentage=Decimal("10")),
        monthly=InstallmentSpec(enabled=True, count=24, auto_calculate=True, first_due_date=date(2025, 2, 10)),
        keys=LumpSumSpec(kind=AmountKind.PERCENTAGE, percentage=Decimal("10")),
    )


@pytest.fixture
def detailed_plan(reference_plan):
    return replace(
        reference_plan,
        details=PropertyDetails(
            constructor="Construtora Horizonte",
            development="Residencial Vista Mar",
            unit="Apto 1203",
            private_area=Decimal("80"),
        ),
    )


@pytest.fixture
def reference_payload():
    return {
        "client_name": "Maria da Silva",
        "property_value": "500000",
        "delivery_date": "2027-01-10",
        "down_payment": {
            "kind": "percentage",
            "percentage": 20,
            "installment_count": 2,
            "first_due_date": "2025-01-10",
        },
        "construction_start": {"kind": "percentage", "percentage": 10},
        "monthly": {"enabled": True, "count": 24, "auto_calculate": True, "first_due_date": "2025-02-10"},
        "keys": {"kind": "percentage", "percentage": 10},
    }


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def fixed_now():
    return datetime(2025, 1, 5, 14, 30, 15)
