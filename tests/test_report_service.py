import unittest
from datetime import date, datetime
from zoneinfo import ZoneInfo

from drivedesk.core.time_provider import TimeProvider
from drivedesk.domain.entities import ClassStatus, DrivingClass, PaymentMethod, PaymentStatus, Student
from drivedesk.domain.snapshot import StoreSnapshot
from drivedesk.services.billing_service import Period
from drivedesk.services.report_service import build_report, format_money, render_report_html


class FixedTimeProvider(TimeProvider):
    def __init__(self, frozen_dt: datetime):
        self._frozen_dt = frozen_dt

    def now(self) -> datetime:
        return self._frozen_dt


def lesson(class_id, student_id, day, price, payment_status=PaymentStatus.PENDING, method=None):
    return DrivingClass(id=class_id, student_id=student_id, date=day, start_time='09:00', end_time='10:00',
                        duration_minutes=60, price=price, status=ClassStatus.COMPLETED,
                        payment_status=payment_status, payment_method=method)


class ReportTests(unittest.TestCase):
    def setUp(self):
        self.clock = FixedTimeProvider(datetime(2024, 4, 2, 18, 30, tzinfo=ZoneInfo('America/Argentina/Buenos_Aires')))
        self.snapshot = StoreSnapshot(
            students=(Student(id='s1', first_name='Ana', last_name='Lopez', phone='11', price_per_class=100),),
            classes=(
                lesson('c1', 's1', date(2024, 3, 1), 10000, PaymentStatus.PAID, PaymentMethod.CASH),
                lesson('c2', 's1', date(2024, 3, 9), 2500.5),
            ),
        )

    def test_money_format(self):
        self.assertEqual(format_money(10000), '$10000')
        self.assertEqual(format_money(0), '$0')
        self.assertEqual(format_money(2500.5), '$2500.50')

    def test_month_report_contents(self):
        report = build_report(self.snapshot, Period.parse('2024-03'), time_provider=self.clock)
        self.assertEqual(report.generated_at, '02/04/2024 18:30')
        self.assertEqual(report.period_label, 'Month: 2024-03')
        self.assertEqual(report.filename, 'billing_report_2024-03.html')
        self.assertEqual(
            report.figures,
            (
                ('Total generated', '$12500.50'),
                ('Total collected', '$10000'),
                ('Pending collection', '$2500.50'),
                ('Collected by method', 'Cash $10000 / Transfer $0'),
            ),
        )
        self.assertEqual(report.series_header[0], 'Day')
        self.assertEqual(report.series_rows, (('01', '$10000'), ('09', '$2500.50')))
        self.assertEqual(report.student_rows, (('Ana L.', '$10000', '$2500.50', '$12500.50'),))

    def test_full_history_report_uses_months(self):
        report = build_report(self.snapshot, Period(), time_provider=self.clock)
        self.assertEqual(report.period_label, 'Full history')
        self.assertEqual(report.series_title, 'Monthly evolution')
        self.assertEqual(report.series_rows, (('2024-03', '$12500.50'),))
        self.assertEqual(report.filename, 'billing_report_all.html')

    def test_rendered_html(self):
        html = render_report_html(build_report(self.snapshot, Period(), time_provider=self.clock))
        self.assertIn('Full history', html)
        self.assertIn('Ana L.', html)
        self.assertIn('$12500.50', html)

    def test_empty_report_renders_placeholder_rows(self):
        html = render_report_html(build_report(StoreSnapshot(), Period.parse('2031-01'), time_provider=self.clock))
        self.assertIn('No data for this period', html)
        self.assertIn('$0', html)


if __name__ == '__main__':
    unittest.main()
