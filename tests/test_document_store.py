import json
import tempfile
import unittest
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from drivedesk.db import Base
from drivedesk.models import ClassDocument
from drivedesk.services.document_store import DELETE_FIELD, DocumentStore


class DocumentStoreTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_document_store.db'
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
        self.store = DocumentStore(self._session_factory)

    def test_subscribe_pushes_current_collection_then_every_write(self):
        self.store.add('classes', {'studentId': 's1', 'price': 100})
        pushes = []
        unsubscribe = self.store.subscribe('classes', pushes.append)
        self.assertEqual(len(pushes), 1)
        self.assertEqual(len(pushes[0]), 1)

        result = self.store.add('classes', {'studentId': 's2', 'price': 200})
        self.assertTrue(result.ok)
        self.assertEqual(len(pushes), 2)
        self.assertEqual({doc['studentId'] for _, doc in pushes[-1]}, {'s1', 's2'})

        unsubscribe()
        self.store.add('classes', {'studentId': 's3', 'price': 300})
        self.assertEqual(len(pushes), 2)

    def test_writes_only_notify_their_collection(self):
        class_pushes = []
        self.store.subscribe('classes', class_pushes.append)
        self.store.add('students', {'firstName': 'Ana'})
        self.assertEqual(len(class_pushes), 1)

    def test_update_merges_and_deletes_fields(self):
        created = self.store.add('classes', {'studentId': 's1', 'paymentMethod': 'cash', 'notes': 'a'})
        result = self.store.update('classes', created.id, {'notes': 'b', 'paymentMethod': DELETE_FIELD})
        self.assertTrue(result.ok)

        db = self._session_factory()
        try:
            row = db.query(ClassDocument).filter(ClassDocument.id == created.id).one()
            stored = json.loads(row.data_json)
        finally:
            db.close()
        self.assertEqual(stored, {'studentId': 's1', 'notes': 'b'})

    def test_add_never_stores_delete_marker(self):
        created = self.store.add('students', {'firstName': 'Ana', 'email': DELETE_FIELD})
        docs = dict(self.store.fetch_all('students'))
        self.assertEqual(docs[created.id], {'firstName': 'Ana'})

    def test_unknown_id_fails_with_not_found(self):
        for result in (
            self.store.update('classes', 'missing', {'notes': 'x'}),
            self.store.delete('classes', 'missing'),
        ):
            self.assertFalse(result.ok)
            self.assertEqual(result.code, 'not_found')

    def test_unknown_collection_is_a_failed_write(self):
        result = self.store.add('invoices', {'amount': 1})
        self.assertFalse(result.ok)
        self.assertEqual(result.code, 'unknown_collection')

    def test_listener_failure_does_not_fail_write(self):
        def broken(_docs):
            raise RuntimeError('boom')

        self.store.subscribe('payments', broken)
        result = self.store.add('payments', {'studentId': 's1', 'amount': 10, 'date': '2024-03-01'})
        self.assertTrue(result.ok)

    def test_delete_removes_document(self):
        created = self.store.add('students', {'firstName': 'Ana'})
        self.assertTrue(self.store.delete('students', created.id).ok)
        self.assertEqual(self.store.fetch_all('students'), [])


if __name__ == '__main__':
    unittest.main()
