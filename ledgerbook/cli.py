"""Command line interface for rendering reports and closing periods."""
from __future__ import annotations

import argparse
import logging
from datetime import date
from pathlib import Path

from ledgerbook.accounting import (
    AccountingEngine,
    JsonFileRepository,
    LedgerError,
    Period,
)
from ledgerbook.config import get_settings
from ledgerbook.rendering.report import (
    REPORT_TITLES,
    build_report,
    render_html,
    report_rows,
    write_csv,
    write_html,
    write_json,
    write_pdf,
)

LOGGER = logging.getLogger(__name__)


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ledgerbook", description="Double-entry ledger reports")
    parser.add_argument("ledger", type=Path, help="JSON ledger file")
    parser.add_argument("--start", type=_iso_date, help="First day of the period (inclusive)")
    parser.add_argument("--end", type=_iso_date, help="Last day of the period (inclusive)")
    parser.add_argument("--seed-demo", action="store_true", help="Seed an empty ledger with demo data")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    report = commands.add_parser("report", help="Render a report")
    report.add_argument("name", choices=sorted(REPORT_TITLES))
    report.add_argument("-f", "--format", choices=("html", "pdf", "csv", "json"), default="html")
    report.add_argument("-o", "--output", type=Path, default=Path("out"), help="Output directory")

    close = commands.add_parser("close", help="Record closing entries for the period")
    close.add_argument("--date", dest="closing_date", type=_iso_date, help="Date for the closing entries")
    close.add_argument("--dry-run", action="store_true", help="Show the entries without recording them")
    return parser


def _load_engine(repository: JsonFileRepository, seed_demo: bool) -> AccountingEngine:
    settings = get_settings()
    options = dict(strict_entry_types=settings.strict_entry_types, epsilon=settings.balance_epsilon)
    snapshot = repository.load()
    if not snapshot.accounts and seed_demo:
        engine = AccountingEngine(seed_demo_data=True, **options)
        repository.save(engine.snapshot())
        LOGGER.info("Seeded demo ledger at %s", repository.path)
        return engine
    return AccountingEngine.from_snapshot(snapshot, **options)


def _run_report(engine: AccountingEngine, args: argparse.Namespace, period: Period) -> None:
    report = build_report(engine, args.name, period)
    output_dir: Path = args.output
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / f"{args.name}.{args.format}"
    if args.format == "csv":
        write_csv(report_rows(args.name, report), target)
    elif args.format == "json":
        write_json(report_rows(args.name, report), target)
    else:
        html_content = render_html(args.name, report, period)
        if args.format == "html":
            write_html(html_content, target)
        else:
            write_pdf(html_content, target)
    LOGGER.info("%s written to %s", REPORT_TITLES[args.name], target)


def _run_close(
    engine: AccountingEngine, repository: JsonFileRepository, args: argparse.Namespace, period: Period
) -> None:
    if args.dry_run:
        plan = engine.plan_closing(period, closing_date=args.closing_date)
    else:
        plan = engine.close_period(period, closing_date=args.closing_date)
        repository.save(engine.snapshot())
    accounts = {account.id: account for account in engine.list_accounts()}
    for step in plan.steps:
        print(f"{step.number}. {step.description}")
        for line in step.lines:
            print(f"   {line.kind.value:<6} {accounts[line.account_id].name:<30} {line.amount:>12.2f}")
    print(f"Net income: {plan.net_income:.2f}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if args.debug else settings.log_level)
    repository = JsonFileRepository(args.ledger)
    try:
        period = Period(start=args.start, end=args.end)
        engine = _load_engine(repository, args.seed_demo)
        if args.command == "report":
            _run_report(engine, args, period)
        else:
            _run_close(engine, repository, args, period)
    except LedgerError as exc:
        LOGGER.error("%s", exc.message)
        return 1
    except RuntimeError as exc:
        LOGGER.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
