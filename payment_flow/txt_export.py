"""Plain-text export of a payment proposal.

The report carries the same information as the PDF as a flat, bordered text.
It is encoded in Windows-1252 (Latin-1 plus the euro sign) rather than
UTF-8 because the mobile text viewers the agents send it to display UTF-8
accents as garbage.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from .config import Settings
from .data_models import CalculatedPlan, PaymentPlanInput
from .formatter import (
    AFTER_DELIVERY_LABEL,
    UNTIL_DELIVERY_LABEL,
    ExportedDocument,
    additional_value_lines,
    agent_line,
    export_filename,
    export_lines,
    installment_text,
    property_detail_lines,
)
from .money import format_amount, format_date, format_percentage

logger = logging.getLogger(__name__)

ENCODING = "cp1252"
SEPARATOR = "=" * 50


def _section(title: str) -> List[str]:
    return [title.upper(), SEPARATOR]


def render_report(
    plan: PaymentPlanInput,
    calculated: CalculatedPlan,
    agent_name: str,
    agent_license: Optional[str] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> str:
    settings = settings or Settings()
    now = now or datetime.now()
    out: List[str] = [SEPARATOR, "PROPOSTA DE PAGAMENTO", SEPARATOR, ""]
    out.append(f"Cliente: {plan.client_name or 'Não informado'}")
    out.append(f"Data: {now.strftime('%d/%m/%Y')}")
    out.append("")

    details = property_detail_lines(plan)
    if details:
        out += _section("Dados do Imóvel")
        out += details
        out.append("")

    out.append(f"Entrega: {format_date(plan.delivery_date)}")
    out.append(f"Valor Total: {format_amount(plan.property_value, plan.currency)}")
    out.append("")

    out += _section("Condições de Pagamento")
    out.append("")
    for line in export_lines(plan, calculated):
        out.append(line.label)
        out.append(f"   {installment_text(line, plan)} ({format_percentage(line.percentage)})")
        if line.due_date is not None:
            out.append(f"   1º vencimento: {format_date(line.due_date)}")
        out.append("")

    out.append(SEPARATOR)
    out.append(
        f"TOTAL: {format_amount(calculated.total_paid, plan.currency)} "
        f"({format_percentage(calculated.total_percentage)})"
    )
    out.append(SEPARATOR)
    out.append("")

    timeline = calculated.timeline
    out += _section("Distribuição Temporal")
    out.append(
        f"{UNTIL_DELIVERY_LABEL}: {format_amount(timeline.total_until_delivery, plan.currency)} "
        f"({format_percentage(timeline.percentage_until_delivery)})"
    )
    out.append(
        f"{AFTER_DELIVERY_LABEL}: {format_amount(timeline.total_after_delivery, plan.currency)} "
        f"({format_percentage(timeline.percentage_after_delivery)})"
    )
    out.append("")

    extras = additional_value_lines(plan, calculated, settings.index_name)
    if extras:
        out += _section("Valores Adicionais")
        out += extras
        out.append("")

    out += _section("Informações")
    out.append(agent_line(agent_name, agent_license))
    out.append(settings.role_line)
    out.append(f"Gerado em: {now.strftime('%d/%m/%Y')} às {now.strftime('%H:%M')}")
    out.append("")
    out.append(SEPARATOR)
    out.append(settings.company_line)
    out.append(SEPARATOR)
    return "\n".join(out) + "\n"


def generate_txt(
    plan: PaymentPlanInput,
    calculated: CalculatedPlan,
    agent_name: str,
    agent_license: Optional[str] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> ExportedDocument:
    """Render the report and encode it as Windows-1252.

    Characters outside the code page (emoji, other scripts in a client
    name) are replaced with ``?``.
    """
    now = now or datetime.now()
    text = render_report(plan, calculated, agent_name, agent_license, settings, now)
    filename = export_filename(plan.client_name, "txt", now)
    logger.info("Text proposal generated: %s", filename)
    return ExportedDocument(
        filename=filename,
        content=text.encode(ENCODING, errors="replace"),
        media_type=f"text/plain; charset={ENCODING}",
    )
