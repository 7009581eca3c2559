import tempfile
import unittest
from datetime import date
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from drivedesk.db import Base
from drivedesk.domain.entities import (
    ClassStatus,
    LedgerMethod,
    Payment,
    PaymentMethod,
    PaymentStatus,
    StudentStatus,
    decode_class,
    decode_student,
)
from drivedesk.domain.snapshot import SchoolStore
from drivedesk.services.document_store import DocumentStore


class DecodeTests(unittest.TestCase):
    def test_student_defaults_for_missing_fields(self):
        student = decode_student('s1', {'firstName': 'Ana', 'lastName': 'Lopez', 'phone': '11', 'pricePerClass': '15000'})
        self.assertEqual(student.price_per_class, 15000.0)
        self.assertEqual(student.promo_packs, 0)
        self.assertIsNone(student.email)
        self.assertEqual(student.status, StudentStatus.ACTIVE)
        self.assertEqual(student.strengths, ())
        self.assertEqual(student.short_name, 'Ana L.')

    def test_unknown_enum_values_fall_back(self):
        student = decode_student('s1', {'firstName': 'Ana', 'pricePerClass': 1, 'status': 'graduated', 'promoPacks': -3})
        self.assertEqual(student.status, StudentStatus.ACTIVE)
        self.assertEqual(student.promo_packs, 0)

    def test_class_method_dropped_unless_paid(self):
        base = {'studentId': 's1', 'date': '2024-03-01', 'startTime': '09:00', 'price': 100}
        pending = decode_class('c1', {**base, 'paymentStatus': 'pending', 'paymentMethod': 'cash'})
        self.assertIsNone(pending.payment_method)
        paid = decode_class('c2', {**base, 'paymentStatus': 'paid', 'paymentMethod': 'transfer'})
        self.assertEqual(paid.payment_method, PaymentMethod.TRANSFER)
        self.assertEqual(paid.status, ClassStatus.SCHEDULED)
        self.assertEqual(paid.duration_minutes, 60)


class SchoolStoreTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_snapshot.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for table in reversed(Base.metadata.sorted_tables):
                db.execute(table.delete())
            db.commit()
        finally:
            db.close()
        self.documents = DocumentStore(self._session_factory)
        self.store = SchoolStore(self.documents)
        self.store.start()

    def tearDown(self):
        self.store.stop()

    def test_snapshot_replaced_after_each_write(self):
        before = self.store.snapshot()
        result = self.store.add_student({'firstName': 'Ana', 'lastName': 'Lopez', 'phone': '11', 'pricePerClass': 15000})
        after = self.store.snapshot()
        self.assertEqual(before.students, ())
        self.assertGreater(after.version, before.version)
        self.assertEqual(after.source, before.source)
        self.assertEqual(self.store.find_student(result.id).first_name, 'Ana')
        self.assertIsNone(self.store.find_student('missing'))

    def test_undecodable_documents_are_skipped(self):
        self.documents.add('classes', {'studentId': 's1'})
        self.documents.add('classes', {'studentId': 's1', 'date': '2024-03-01', 'startTime': '09:00', 'price': 100})
        self.assertEqual(len(self.store.snapshot().classes), 1)

    def test_payments_ledger_round_trip(self):
        payment = Payment(id='', student_id='s1', amount=5000, date=date(2024, 3, 1), method=LedgerMethod.CARD, concept='Pack')
        result = self.store.add_payment(payment)
        stored = self.store.snapshot().payments
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0].id, result.id)
        self.assertEqual(stored[0].method, LedgerMethod.CARD)
        self.assertTrue(self.store.delete_payment(result.id).ok)
        self.assertEqual(self.store.snapshot().payments, ())

    def test_on_change_listeners_receive_new_snapshot(self):
        seen = []
        remove = self.store.on_change(seen.append)
        self.store.add_class({'studentId': 's1', 'date': '2024-03-01', 'startTime': '09:00', 'price': 100,
                              'paymentStatus': PaymentStatus.PENDING.value})
        self.assertEqual(len(seen), 1)
        self.assertEqual(len(seen[0].classes), 1)
        remove()
        self.store.delete_class(seen[0].classes[0].id)
        self.assertEqual(len(seen), 1)
        self.assertEqual(self.store.snapshot().classes, ())

    def test_stop_detaches_from_store(self):
        self.store.stop()
        version = self.store.snapshot().version
        self.documents.add('students', {'firstName': 'Ana', 'pricePerClass': 1})
        self.assertEqual(self.store.snapshot().version, version)
        self.store.start()
        self.assertEqual(len(self.store.snapshot().students), 1)


if __name__ == '__main__':
    unittest.main()
