"""Printable billing report built from a period summary.

Money is printed as the currency symbol followed by the bare amount with no
thousands separators (``$10000``), matching previously printed reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from drivedesk.config import settings
from drivedesk.core.time_provider import TimeProvider, default_time_provider
from drivedesk.domain.snapshot import StoreSnapshot
from drivedesk.metrics import timed_service
from drivedesk.services.billing_service import BillingSummary, Period, snapshot_summary


TEMPLATES_DIR = Path(__file__).resolve().parents[1] / 'ui' / 'templates'
_env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=select_autoescape(['html']))


def format_money(amount: float) -> str:
    value = round(float(amount or 0), 2)
    if value == int(value):
        return f'{settings.currency_symbol}{int(value)}'
    return f'{settings.currency_symbol}{value:.2f}'


@dataclass(frozen=True)
class BillingReport:
    title: str
    generated_at: str
    period_label: str
    period_key: str
    figures: tuple[tuple[str, str], ...]
    series_title: str
    series_header: tuple[str, str]
    series_rows: tuple[tuple[str, str], ...]
    students_title: str
    students_header: tuple[str, str, str, str]
    student_rows: tuple[tuple[str, str, str, str], ...]

    @property
    def filename(self) -> str:
        return f'billing_report_{self.period_key}.html'


def _figures(summary: BillingSummary) -> tuple[tuple[str, str], ...]:
    by_method = f'Cash {format_money(summary.cash_total)} / Transfer {format_money(summary.transfer_total)}'
    return (
        ('Total generated', format_money(summary.generated_total)),
        ('Total collected', format_money(summary.paid_total)),
        ('Pending collection', format_money(summary.pending_total)),
        ('Collected by method', by_method),
    )


@timed_service('build_billing_report')
def build_report(
    snapshot: StoreSnapshot,
    period: Period,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> BillingReport:
    summary = snapshot_summary(snapshot, period)
    return BillingReport(
        title=f'{settings.school_name} - Financial Report',
        generated_at=time_provider.now().strftime('%d/%m/%Y %H:%M'),
        period_label=period.label,
        period_key=period.key,
        figures=_figures(summary),
        series_title='Monthly evolution' if period.is_all_time else 'Daily evolution',
        series_header=('Month' if period.is_all_time else 'Day', f'Billed ({settings.currency_symbol})'),
        series_rows=tuple((bucket.label, format_money(bucket.total)) for bucket in summary.series),
        students_title='Per-student detail (top 10 in period)',
        students_header=('Student', 'Paid', 'Pending', 'Total'),
        student_rows=tuple(
            (row.name, format_money(row.paid), format_money(row.pending), format_money(row.total))
            for row in summary.top_students
        ),
    )


def render_report_html(report: BillingReport) -> str:
    return _env.get_template('billing_report.html').render(report=report)
