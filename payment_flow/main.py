"""Command-line interface for the payment flow calculator.

This module uses the ``click`` library to implement a multi-command
interface. Agents can compute a payment plan from a JSON proposal, export it
as a PDF or text proposal, and maintain the monthly monetary index table.
The JSON helpers here are shared with the web API.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import click

from .config import configure_logging, load_settings
from .data_models import (
    BASE_CURRENCY,
    CURRENCIES,
    AmountKind,
    CalculatedPlan,
    Currency,
    DownPaymentSpec,
    IndexPeriod,
    InstallmentSpec,
    LumpSumSpec,
    MonetaryIndex,
    PaymentPlanInput,
    PropertyDetails,
)
from .engine import calculate_plan
from .formatter import print_summary, summary_blocks
from .index import lookup_index
from .index_store import IndexStore, create_store_from_env
from .pdf_export import generate_pdf
from .txt_export import generate_txt
from .utils import decimal_from_str, optional_decimal, parse_date, parse_year_month

logger = logging.getLogger(__name__)

KIND_ALIASES = {
    "percentage": AmountKind.PERCENTAGE,
    "percent": AmountKind.PERCENTAGE,
    "absolute": AmountKind.ABSOLUTE,
    "value": AmountKind.ABSOLUTE,
}


def _get(data: Mapping[str, Any], *names: str, default=None):
    """First present key among ``names`` (snake_case and legacy camelCase)."""
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return default


def parse_kind(value: Any, percentage: Any = None) -> AmountKind:
    if value is None:
        return AmountKind.PERCENTAGE if percentage is not None else AmountKind.ABSOLUTE
    try:
        return KIND_ALIASES[str(value).lower()]
    except KeyError as exc:
        raise ValueError(f"Amount kind must be 'percentage' or 'absolute'; got {value}") from exc


def parse_currency(value: Any) -> Currency:
    """Currency from a preset code or an explicit object (custom rate)."""
    if value is None:
        return BASE_CURRENCY
    if isinstance(value, str):
        code = value.upper()
        if code not in CURRENCIES:
            raise ValueError(f"Unknown currency: {value}")
        return CURRENCIES[code]
    code = str(_get(value, "code", default=BASE_CURRENCY.code)).upper()
    preset = CURRENCIES.get(code)
    rate = optional_decimal(_get(value, "rate", "exchange_rate"))
    if rate is None:
        rate = preset.rate if preset else Decimal("1")
    if rate <= 0:
        raise ValueError("Exchange rate must be positive")
    return Currency(
        code=code,
        symbol=_get(value, "symbol", default=preset.symbol if preset else code),
        rate=rate,
        name=_get(value, "name", default=preset.name if preset else code),
    )


def _lump_sum(data: Any) -> Optional[LumpSumSpec]:
    if data is None:
        return None
    if not isinstance(data, Mapping):
        # legacy proposals stored a bare amount
        return LumpSumSpec(kind=AmountKind.ABSOLUTE, value=optional_decimal(data))
    percentage = optional_decimal(_get(data, "percentage"))
    return LumpSumSpec(
        kind=parse_kind(_get(data, "kind", "type"), percentage),
        percentage=percentage,
        value=optional_decimal(_get(data, "value")),
        first_due_date=parse_date(_get(data, "first_due_date", "firstDueDate")),
    )


def _installments(data: Any) -> Optional[InstallmentSpec]:
    if data is None:
        return None
    return InstallmentSpec(
        enabled=bool(_get(data, "enabled", default=False)),
        count=int(_get(data, "count", default=0)),
        value=optional_decimal(_get(data, "value")),
        percentage=optional_decimal(_get(data, "percentage")),
        first_due_date=parse_date(_get(data, "first_due_date", "firstDueDate")),
        auto_calculate=bool(_get(data, "auto_calculate", "autoCalculate", default=False)),
    )


def _down_payment(data: Any, construction_start_date: Optional[date]) -> DownPaymentSpec:
    if data is None:
        return DownPaymentSpec()
    if not isinstance(data, Mapping):
        return DownPaymentSpec(
            kind=AmountKind.ABSOLUTE,
            value=optional_decimal(data),
            first_due_date=construction_start_date,
        )
    percentage = optional_decimal(_get(data, "percentage"))
    first_due = parse_date(_get(data, "first_due_date", "firstDueDate"))
    if first_due is None and "upfront" not in data and "ato" not in data:
        # Proposals saved before due dates existed start paying with construction.
        first_due = construction_start_date
    return DownPaymentSpec(
        kind=parse_kind(_get(data, "kind", "type"), percentage),
        percentage=percentage,
        value=optional_decimal(_get(data, "value")),
        first_due_date=first_due,
        installment_count=int(_get(data, "installment_count", "installments", default=1)),
        upfront=_lump_sum(_get(data, "upfront", "ato")),
    )


def plan_from_dict(data: Mapping[str, Any]) -> PaymentPlanInput:
    """Build a plan from a JSON proposal.

    Legacy proposals (camelCase keys, down payment and keys payment stored
    as bare numbers, property metadata at the top level) are migrated on the
    fly. Raises ``ValueError`` for values that cannot be parsed.
    """
    property_value = optional_decimal(_get(data, "property_value", "propertyValue"))
    if property_value is None:
        raise ValueError("Missing property value")
    construction_start_date = parse_date(_get(data, "construction_start_date", "constructionStartDate"))
    details = _get(data, "details", default=data)
    return PaymentPlanInput(
        property_value=property_value,
        client_name=str(_get(data, "client_name", "clientName", default="")),
        currency=parse_currency(_get(data, "currency")),
        delivery_date=parse_date(_get(data, "delivery_date", "deliveryDate")),
        construction_start_date=construction_start_date,
        down_payment=_down_payment(_get(data, "down_payment", "downPayment"), construction_start_date),
        construction_start=_lump_sum(_get(data, "construction_start", "constructionStartPayment")),
        monthly=_installments(_get(data, "monthly")),
        semiannual=_installments(_get(data, "semiannual", "semiannualReinforcement")),
        annual=_installments(_get(data, "annual", "annualReinforcement")),
        keys=_lump_sum(_get(data, "keys", "keysPayment")),
        details=PropertyDetails(
            constructor=_get(details, "constructor", "constructora") or None,
            development=_get(details, "development", "empreendimento") or None,
            unit=_get(details, "unit", "unidade") or None,
            private_area=optional_decimal(_get(details, "private_area", "areaPrivativa")),
            description=_get(details, "description", "descricao") or None,
        ),
    )


def validate_proposal_data(plan: PaymentPlanInput) -> List[str]:
    """Problems that make a saved proposal unusable for export.

    These are checked before exporting, not before calculating: the
    calculator accepts any plan so agents can explore scenarios.
    """
    problems = []
    if plan.property_value <= 0:
        problems.append("Valor do imóvel deve ser maior que zero")
    if not plan.client_name.strip():
        problems.append("Nome do cliente não informado")
    upfront = plan.down_payment.upfront
    if upfront is not None:
        amount = upfront.percentage if upfront.kind == AmountKind.PERCENTAGE else upfront.value
        if amount is None or amount <= 0:
            problems.append("Ato sem valor definido")
    return problems


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, IndexPeriod):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def calculated_plan_to_dict(calculated: CalculatedPlan) -> Dict[str, Any]:
    """JSON-serialisable view of a calculated plan (decimals as strings)."""
    data = {f.name: getattr(calculated, f.name) for f in dataclasses.fields(calculated)}
    for name, value in data.items():
        if dataclasses.is_dataclass(value):
            data[name] = dataclasses.asdict(value)
    if calculated.index is not None:
        data["index"] = {
            "value": calculated.index.value,
            "period": calculated.index.period,
            "is_stale": calculated.index.is_stale,
        }
    data["is_valid"] = calculated.is_valid
    return _jsonable(data)


def export_to_json(path: Path, plan: PaymentPlanInput, calculated: CalculatedPlan) -> None:
    """Export the calculated plan and its display blocks to a JSON file."""
    data = {
        "result": calculated_plan_to_dict(calculated),
        "summary": [dataclasses.asdict(block) for block in summary_blocks(plan, calculated)],
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def load_plan(path: str) -> PaymentPlanInput:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise click.BadParameter(f"Cannot read proposal {path}: {exc}")
    try:
        return plan_from_dict(data)
    except (ValueError, TypeError) as exc:
        raise click.BadParameter(str(exc))


def parse_period(value: Optional[str]) -> Optional[IndexPeriod]:
    if not value:
        return None
    try:
        return IndexPeriod.from_date(parse_year_month(value))
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def resolve_index(index_db: Optional[str], index_period: Optional[str]) -> Optional[MonetaryIndex]:
    if not index_db:
        return None
    return lookup_index(IndexStore(index_db), parse_period(index_period))


@click.group()
def cli() -> None:
    """Payment flow calculator for real-estate proposals."""
    configure_logging(load_settings().log_level)


index_db_option = click.option(
    "--index-db",
    "index_db",
    envvar="PAYMENT_FLOW_INDEX_DATABASE_URL",
    help="SQLAlchemy URL of the monetary index table",
)
index_period_option = click.option(
    "--index-period", "index_period", help="Index month (YYYY-MM); defaults to the current month"
)


@cli.command()
@click.argument("proposal", type=click.Path(exists=True, dir_okay=False))
@index_db_option
@index_period_option
@click.option("--output", "output", type=str, help="Output file path (.json)")
def calculate(proposal: str, index_db: Optional[str], index_period: Optional[str], output: Optional[str]) -> None:
    """Compute and print the payment flow of a JSON proposal."""
    plan = load_plan(proposal)
    calculated = calculate_plan(plan, resolve_index(index_db, index_period))
    settings = load_settings()
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Unsupported output format; use .json")
        export_to_json(path, plan, calculated)
        click.echo(f"Result exported to {path}")
    else:
        print_summary(plan, calculated, settings.index_name)


@cli.command()
@click.argument("proposal", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "fmt", type=click.Choice(["pdf", "txt"]), default="pdf", help="Document format")
@click.option("--agent", "agent", required=True, help="Agent name printed in the footer")
@click.option("--license", "agent_license", help="Agent license (CRECI) number")
@click.option("--output-dir", "output_dir", type=click.Path(file_okay=False), default=".", help="Target directory")
@index_db_option
@index_period_option
def export(
    proposal: str,
    fmt: str,
    agent: str,
    agent_license: Optional[str],
    output_dir: str,
    index_db: Optional[str],
    index_period: Optional[str],
) -> None:
    """Export a proposal as a PDF document or a text report."""
    plan = load_plan(proposal)
    problems = validate_proposal_data(plan)
    if problems:
        raise click.BadParameter("; ".join(problems))
    calculated = calculate_plan(plan, resolve_index(index_db, index_period))
    settings = load_settings()
    generator = generate_pdf if fmt == "pdf" else generate_txt
    document = generator(plan, calculated, agent, agent_license, settings)
    target = Path(output_dir)
    target.mkdir(parents=True, exist_ok=True)
    path = target / document.filename
    path.write_bytes(document.content)
    click.echo(f"Proposal exported to {path}")
    for warning in calculated.warnings:
        click.echo(f"Warning: {warning}", err=True)


@cli.group()
def index() -> None:
    """Maintain the monthly monetary index values."""


def _store(index_db: Optional[str]) -> IndexStore:
    return create_store_from_env(index_db)


@index.command("set")
@click.argument("period")
@click.argument("value")
@index_db_option
def index_set(period: str, value: str, index_db: Optional[str]) -> None:
    """Record VALUE as the index of PERIOD (YYYY-MM)."""
    target = parse_period(period)
    try:
        amount = decimal_from_str(value)
        _store(index_db).set_value(target, amount)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    click.echo(f"Index for {target} set to {amount}")


@index.command("show")
@click.argument("period", required=False)
@index_db_option
def index_show(period: Optional[str], index_db: Optional[str]) -> None:
    """Show the index used for PERIOD (defaults to the current month)."""
    found = lookup_index(_store(index_db), parse_period(period))
    if found is None:
        click.echo("No index value recorded")
        return
    suffix = f" (stale, requested {found.requested_period})" if found.is_stale else ""
    click.echo(f"{found.period}: {found.value}{suffix}")


@index.command("list")
@index_db_option
def index_list(index_db: Optional[str]) -> None:
    """List every recorded index value, most recent first."""
    for row in _store(index_db).list_values():
        click.echo(f"{row['period']}\t{row['value']}")


@index.command("status")
@index_db_option
def index_status(index_db: Optional[str]) -> None:
    """Report whether the current month's index has been recorded."""
    if _store(index_db).is_current_period_missing():
        click.echo(f"Index for {IndexPeriod.from_date(date.today())} is missing")
    else:
        click.echo("Index is up to date")


if __name__ == "__main__":
    cli()
