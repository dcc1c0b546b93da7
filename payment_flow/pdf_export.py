"""PDF export of a payment proposal.

The layout is fixed: logo, title and client, property details, payment
conditions table, total, temporal distribution, additional values and the
agent footer. Rendering uses reportlab's platypus flowables on A4 pages.
"""

from __future__ import annotations

import logging
from datetime import datetime
from io import BytesIO
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import HRFlowable, Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .assets import load_logo
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
    property_detail_lines,
)
from .money import format_amount, format_date, format_percentage

logger = logging.getLogger(__name__)

LOGO_WIDTH = 50 * mm
HEADER_COLOR = colors.HexColor("#2980B9")

CONDITIONS_HEADER = ["Tipo", "Parcelas", "Valor", "% Total"]
DUE_DATE_HEADER = "1º Vencimento"


def conditions_table_rows(plan: PaymentPlanInput, calculated: CalculatedPlan) -> Tuple[List[str], List[List[str]]]:
    """Header and body of the payment conditions table.

    The due date column is only added when at least one line has a date.
    """
    lines = export_lines(plan, calculated)
    with_dates = any(line.due_date is not None for line in lines)
    header = CONDITIONS_HEADER + ([DUE_DATE_HEADER] if with_dates else [])
    rows = []
    for line in lines:
        row = [
            line.label,
            f"{line.count}x",
            format_amount(line.installment_value, plan.currency),
            format_percentage(line.percentage),
        ]
        if with_dates:
            row.append(format_date(line.due_date, missing="-"))
        rows.append(row)
    return header, rows


def _logo_flowable(data: Optional[bytes]) -> Optional[Image]:
    if not data:
        return None
    try:
        width, height = ImageReader(BytesIO(data)).getSize()
    except (OSError, ValueError) as exc:
        logger.warning("Logo could not be decoded, exporting without it: %s", exc)
        return None
    if not width or not height:
        return None
    logo = Image(BytesIO(data), width=LOGO_WIDTH, height=LOGO_WIDTH * height / width)
    logo.hAlign = "CENTER"
    return logo


def _table(data, col_widths=None) -> Table:
    table = Table(data, colWidths=col_widths, hAlign="LEFT")
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F2F2F2")]),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#CCCCCC")),
                ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
            ]
        )
    )
    return table


def build_story(
    plan: PaymentPlanInput,
    calculated: CalculatedPlan,
    agent_name: str,
    agent_license: Optional[str],
    settings: Settings,
    logo: Optional[bytes],
    now: datetime,
) -> list:
    styles = getSampleStyleSheet()
    title = ParagraphStyle("ProposalTitle", parent=styles["Title"], alignment=TA_CENTER, fontSize=18)
    heading = ParagraphStyle("ProposalHeading", parent=styles["Heading3"], spaceBefore=8, spaceAfter=4)
    body = styles["BodyText"]
    total_style = ParagraphStyle("ProposalTotal", parent=styles["Heading2"], spaceBefore=8)
    footer = ParagraphStyle("ProposalFooter", parent=body, fontSize=8, textColor=colors.grey)

    def para(text: str, style=body) -> Paragraph:
        return Paragraph(escape(text), style)

    story: list = []
    logo_flowable = _logo_flowable(logo)
    if logo_flowable is not None:
        story += [logo_flowable, Spacer(1, 4 * mm)]

    story.append(para("PROPOSTA DE PAGAMENTO", title))
    story.append(para(f"Cliente: {plan.client_name or 'Não informado'}"))

    details = property_detail_lines(plan)
    if details:
        story.append(para("DADOS DO IMÓVEL", heading))
        story += [para(line) for line in details]

    story.append(Spacer(1, 3 * mm))
    story.append(para(f"Entrega: {format_date(plan.delivery_date)}"))
    story.append(para(f"Valor Total: {format_amount(plan.property_value, plan.currency)}"))

    story.append(para("CONDIÇÕES DE PAGAMENTO", heading))
    header, rows = conditions_table_rows(plan, calculated)
    story.append(_table([header] + rows))

    story.append(
        para(
            f"TOTAL: {format_amount(calculated.total_paid, plan.currency)} "
            f"({format_percentage(calculated.total_percentage)})",
            total_style,
        )
    )

    timeline = calculated.timeline
    story.append(para("DISTRIBUIÇÃO TEMPORAL", heading))
    story.append(
        _table(
            [
                ["", "Valor", "%"],
                [
                    UNTIL_DELIVERY_LABEL,
                    format_amount(timeline.total_until_delivery, plan.currency),
                    format_percentage(timeline.percentage_until_delivery),
                ],
                [
                    AFTER_DELIVERY_LABEL,
                    format_amount(timeline.total_after_delivery, plan.currency),
                    format_percentage(timeline.percentage_after_delivery),
                ],
            ]
        )
    )

    extras = additional_value_lines(plan, calculated, settings.index_name)
    if extras:
        story.append(para("VALORES ADICIONAIS", heading))
        story += [para(line) for line in extras]

    story.append(Spacer(1, 10 * mm))
    story.append(para(agent_line(agent_name, agent_license)))
    story.append(para(settings.role_line))
    story.append(para(settings.company_line))
    story.append(HRFlowable(width="100%", thickness=0.5, color=colors.lightgrey, spaceBefore=2, spaceAfter=2))
    story.append(para(f"Gerado em: {now.strftime('%d/%m/%Y')} às {now.strftime('%H:%M')}", footer))
    return story


def generate_pdf(
    plan: PaymentPlanInput,
    calculated: CalculatedPlan,
    agent_name: str,
    agent_license: Optional[str] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> ExportedDocument:
    """Render the proposal as a PDF document.

    The logo named by ``settings.logo_source`` is fetched first, waiting at
    most ``settings.logo_timeout`` seconds; without it the layout simply
    starts at the title.
    """
    settings = settings or Settings()
    now = now or datetime.now()
    logo = load_logo(settings.logo_source, settings.logo_timeout)

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=12 * mm,
        bottomMargin=12 * mm,
        title="Proposta de Pagamento",
        author=agent_name,
    )
    doc.build(build_story(plan, calculated, agent_name, agent_license, settings, logo, now))

    filename = export_filename(plan.client_name, "pdf", now)
    logger.info("PDF proposal generated: %s", filename)
    return ExportedDocument(filename=filename, content=buffer.getvalue(), media_type="application/pdf")
