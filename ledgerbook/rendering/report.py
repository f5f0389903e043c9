"""HTML, PDF and CSV rendering for ledger reports."""
from __future__ import annotations

import csv
import io
import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ledgerbook.accounting import AccountingEngine, Period
from ledgerbook.config import AppSettings, get_settings

try:  # pragma: no cover - optional dependency
    from weasyprint import HTML
except Exception:  # pragma: no cover - fallback when not installed
    HTML = None  # type: ignore

LOGGER = logging.getLogger(__name__)

REPORT_TITLES = {
    "trial-balance": "Trial Balance",
    "income-statement": "Income Statement",
    "balance-sheet": "Balance Sheet",
    "general-ledger": "General Ledger",
    "transactions": "Transaction List",
}

Row = Dict[str, Any]


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def _blank_zero(value: Decimal) -> str:
    return _money(value) if value else ""


def build_report(engine: AccountingEngine, name: str, period: Optional[Period] = None) -> Any:
    """Compute the named report for ``period``."""
    if name == "trial-balance":
        return engine.trial_balance(period)
    if name == "income-statement":
        return engine.income_statement(period)
    if name == "balance-sheet":
        return engine.balance_sheet(period)
    if name == "general-ledger":
        return engine.general_ledger(period)
    if name == "transactions":
        period = period or Period()
        accounts = {account.id: account for account in engine.list_accounts()}
        lines = [line for line in engine.list_transactions() if period.contains(line.date)]
        return [(line, accounts[line.account_id]) for line in sorted(lines, key=lambda line: line.date)]
    raise ValueError(f"Unknown report '{name}'")


def report_rows(name: str, report: Any) -> List[Row]:
    """Flatten a report into rows with the same keys, for CSV export."""
    rows: List[Row] = []
    if name == "trial-balance":
        for row in report.rows:
            rows.append(
                {
                    "Account Number": row.account.number,
                    "Account Name": row.account.name,
                    "Debit": _blank_zero(row.debit),
                    "Credit": _blank_zero(row.credit),
                }
            )
        rows.append(
            {
                "Account Number": "",
                "Account Name": "Totals",
                "Debit": _money(report.total_debit),
                "Credit": _money(report.total_credit),
            }
        )
    elif name == "income-statement":
        for section, lines, total in (
            ("Revenue", report.revenues, report.total_revenue),
            ("Expenses", report.expenses, report.total_expenses),
        ):
            rows.extend({"Section": section, "Account": line.account.name, "Amount": _money(line.amount)} for line in lines)
            rows.append({"Section": section, "Account": f"Total {section}", "Amount": _money(total)})
        rows.append({"Section": "", "Account": "Net Income", "Amount": _money(report.net_income)})
    elif name == "balance-sheet":
        for section, lines, total in (
            ("Assets", report.assets, report.total_assets),
            ("Liabilities", report.liabilities, report.total_liabilities),
        ):
            rows.extend({"Section": section, "Account": line.account.name, "Amount": _money(line.amount)} for line in lines)
            rows.append({"Section": section, "Account": f"Total {section}", "Amount": _money(total)})
        rows.extend({"Section": "Equity", "Account": line.account.name, "Amount": _money(line.amount)} for line in report.equity)
        rows.append({"Section": "Equity", "Account": "Net Income", "Amount": _money(report.net_income)})
        rows.append({"Section": "Equity", "Account": "Total Equity", "Amount": _money(report.total_equity)})
    elif name == "general-ledger":
        for ledger in report:
            for row in ledger.rows:
                rows.append(
                    {
                        "Account": f"{ledger.account.number} - {ledger.account.name}",
                        "Date": row.transaction.date.isoformat(),
                        "Description": row.transaction.description,
                        "Debit": _blank_zero(row.debit),
                        "Credit": _blank_zero(row.credit),
                        "Balance": _money(row.balance),
                    }
                )
    elif name == "transactions":
        for line, account in report:
            rows.append(
                {
                    "Date": line.date.isoformat(),
                    "Description": line.description,
                    "Account": f"{account.number} - {account.name}",
                    "Type": line.kind.value,
                    "Amount": _money(line.amount),
                }
            )
    else:
        raise ValueError(f"Unknown report '{name}'")
    return rows


def to_csv(rows: Iterable[Row]) -> str:
    rows = list(rows)
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def _build_environment(settings: AppSettings) -> Environment:
    loader = FileSystemLoader(str(settings.template_dir))
    env = Environment(loader=loader, autoescape=select_autoescape(["html", "xml", "j2"]))
    env.filters["money"] = _money
    env.filters["blank_zero"] = _blank_zero
    return env


def render_html(
    name: str,
    report: Any,
    period: Optional[Period] = None,
    settings: AppSettings | None = None,
) -> str:
    settings = settings or get_settings()
    env = _build_environment(settings)
    template = env.get_template(f"{name}.html.j2")
    return template.render(
        report=report,
        title=REPORT_TITLES[name],
        subtitle=f"Period: {(period or Period()).label()}",
        generated_on=date.today(),
        settings=settings,
    )


def write_html(html_content: str, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html_content, encoding="utf-8")
    return output_path


def write_pdf(html_content: str, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if HTML is None:
        raise RuntimeError("WeasyPrint is not installed; cannot render PDF")
    HTML(string=html_content).write_pdf(str(output_path))
    return output_path


def write_csv(rows: Iterable[Row], output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(to_csv(rows), encoding="utf-8")
    return output_path


def write_json(rows: Iterable[Row], output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(list(rows), indent=2, default=str), encoding="utf-8")
    return output_path


__all__ = [
    "REPORT_TITLES",
    "build_report",
    "render_html",
    "report_rows",
    "to_csv",
    "write_csv",
    "write_html",
    "write_json",
    "write_pdf",
]
