"""Output helpers for the payment flow calculator.

:func:`export_lines` projects a calculated plan onto the ordered list of
payment buckets that every output shows. The on-screen summary, the PDF and
the text report are all built from it, so they always list the same buckets
in the same order with the same rounding.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from .data_models import BucketResult, CalculatedPlan, PaymentPlanInput
from .money import format_amount, format_date, format_number, format_percentage, format_with_base

BUCKET_LABELS = {
    "upfront": ("Ato", "💰"),
    "down_payment": ("Entrada", "🏁"),
    "construction_start": ("Início da Obra", "🏗️"),
    "monthly": ("Mensais", "📆"),
    "semiannual": ("Reforços Semestrais", "🎯"),
    "annual": ("Reforços Anuais", "🎯"),
    "keys": ("Chaves", "🔑"),
}
UNTIL_DELIVERY_LABEL = "Até a Entrega"
AFTER_DELIVERY_LABEL = "Após a Entrega"


@dataclass(frozen=True)
class ExportLine:
    """One payment bucket as shown to the client."""

    key: str
    label: str
    icon: str
    count: int
    installment_value: Decimal
    total: Decimal
    percentage: Decimal
    due_date: Optional[date] = None


@dataclass(frozen=True)
class SummaryBlock:
    key: str
    label: str
    icon: str
    primary_line: str
    secondary_percentage: Optional[str] = None


@dataclass(frozen=True)
class ExportedDocument:
    filename: str
    content: bytes
    media_type: str


def _line(key: str, bucket: Optional[BucketResult], due_date: Optional[date] = None) -> Optional[ExportLine]:
    if bucket is None or not bucket.total:
        return None
    label, icon = BUCKET_LABELS[key]
    return ExportLine(
        key=key,
        label=label,
        icon=icon,
        count=bucket.installment_count,
        installment_value=bucket.installment_value,
        total=bucket.total,
        percentage=bucket.percentage,
        due_date=due_date if due_date is not None else bucket.first_due_date,
    )


def export_lines(plan: PaymentPlanInput, calculated: CalculatedPlan) -> List[ExportLine]:
    """Non-zero buckets in display order.

    The keys payment falls due on delivery unless it has a date of its own.
    """
    down = calculated.down_payment
    candidates = [
        _line("upfront", down.upfront),
        _line("down_payment", down.installments),
        _line("construction_start", calculated.construction_start),
        _line("monthly", calculated.monthly),
        _line("semiannual", calculated.semiannual),
        _line("annual", calculated.annual),
    ]
    if calculated.keys is not None:
        candidates.append(_line("keys", calculated.keys, calculated.keys.first_due_date or plan.delivery_date))
    return [line for line in candidates if line is not None]


def installment_text(line: ExportLine, plan: PaymentPlanInput) -> str:
    """``"24x de R$ 12.500,00"``, or just the amount for a single payment."""
    amount = format_amount(line.installment_value, plan.currency)
    if line.count > 1:
        return f"{line.count}x de {amount}"
    return amount


def summary_blocks(plan: PaymentPlanInput, calculated: CalculatedPlan, index_name: str = "CUB/SC") -> List[SummaryBlock]:
    """Display blocks for the on-screen breakdown, one per non-zero bucket,
    followed by the derived metrics and the temporal split."""
    blocks = [
        SummaryBlock(
            key=line.key,
            label=line.label,
            icon=line.icon,
            primary_line=installment_text(line, plan),
            secondary_percentage=format_percentage(line.percentage),
        )
        for line in export_lines(plan, calculated)
    ]
    if calculated.price_per_area is not None:
        blocks.append(
            SummaryBlock(
                key="price_per_area",
                label="Valor por m²",
                icon="📐",
                primary_line=f"{format_amount(calculated.price_per_area, plan.currency)}/m²",
            )
        )
    if calculated.total_in_index_units is not None:
        blocks.append(
            SummaryBlock(
                key="index",
                label=f"Equivalente em {index_name}",
                icon="📈",
                primary_line=f"{format_number(calculated.total_in_index_units)} {index_name}",
            )
        )
    timeline = calculated.timeline
    blocks.append(
        SummaryBlock(
            key="until_delivery",
            label=UNTIL_DELIVERY_LABEL,
            icon="📅",
            primary_line=format_amount(timeline.total_until_delivery, plan.currency),
            secondary_percentage=format_percentage(timeline.percentage_until_delivery),
        )
    )
    blocks.append(
        SummaryBlock(
            key="after_delivery",
            label=AFTER_DELIVERY_LABEL,
            icon="🏠",
            primary_line=format_amount(timeline.total_after_delivery, plan.currency),
            secondary_percentage=format_percentage(timeline.percentage_after_delivery),
        )
    )
    return blocks


def property_detail_lines(plan: PaymentPlanInput) -> List[str]:
    """Populated property metadata as ``"Label: value"`` lines."""
    details = plan.details
    lines = []
    if details.constructor:
        lines.append(f"Construtora: {details.constructor}")
    if details.development:
        lines.append(f"Empreendimento: {details.development}")
    if details.unit:
        lines.append(f"Unidade: {details.unit}")
    if details.private_area:
        lines.append(f"Área Privativa: {format_number(details.private_area)} m²")
    if details.description:
        lines.append(f"Descrição: {details.description}")
    return lines


def additional_value_lines(plan: PaymentPlanInput, calculated: CalculatedPlan, index_name: str = "CUB/SC") -> List[str]:
    """Price per m² and index equivalent; empty when neither is available."""
    lines = []
    if calculated.price_per_area is not None:
        lines.append(f"Valor por m²: {format_amount(calculated.price_per_area, plan.currency)}")
    if calculated.total_in_index_units is not None and calculated.index is not None:
        lines.append(
            f"Equivalente em {index_name}: {format_number(calculated.total_in_index_units)} {index_name} "
            f"(base: {format_amount(calculated.index.value)} em {calculated.index.period})"
        )
        if calculated.index_staleness_warning:
            lines.append(f"Aviso: {calculated.index_staleness_warning}")
        lines.append(f"Valores sujeitos a correção mensal pelo {index_name}.")
    return lines


def agent_line(agent_name: str, agent_license: Optional[str] = None) -> str:
    if agent_license:
        return f"Corretor: {agent_name} - CRECI {agent_license}"
    return f"Corretor: {agent_name}"


def export_filename(client_name: str, extension: str, now: Optional[datetime] = None) -> str:
    """``proposta_<client>_<YYYYMMDD_HHmmss>.<ext>``."""
    now = now or datetime.now()
    client = re.sub(r"\s+", "_", client_name.strip()) or "cliente"
    return f"proposta_{client}_{now.strftime('%Y%m%d_%H%M%S')}.{extension}"


def print_summary(plan: PaymentPlanInput, calculated: CalculatedPlan, index_name: str = "CUB/SC") -> None:
    """Print the plan breakdown in a human-readable format."""
    print("Resumo")
    print("-" * 72)
    print(f"Valor do imóvel    : {format_with_base(plan.property_value, plan.currency)}")
    for block in summary_blocks(plan, calculated, index_name):
        line = f"{block.label:19s}: {block.primary_line}"
        if block.secondary_percentage:
            line += f" ({block.secondary_percentage})"
        print(line)
    print(
        f"{'Total':19s}: {format_with_base(calculated.total_paid, plan.currency)} "
        f"({format_percentage(calculated.total_percentage)})"
    )
    if calculated.exceeds_limit:
        print(f"{'Excedente':19s}: {format_amount(calculated.exceeded_amount, plan.currency)}")
    elif calculated.remaining_amount:
        print(f"{'Falta':19s}: {format_amount(calculated.remaining_amount, plan.currency)}")
    print(f"{'Meses até entrega':19s}: {calculated.timeline.months_until_delivery}")
    if calculated.index_staleness_warning:
        print(f"Aviso: {calculated.index_staleness_warning}")
    for warning in calculated.warnings:
        print(f"Aviso: {warning}")
    print("-" * 72)
