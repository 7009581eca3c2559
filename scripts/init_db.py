from datetime import timedelta
from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from drivedesk.core.time_provider import default_time_provider
from drivedesk.db import Base, SessionLocal, engine
from drivedesk.domain.entities import ClassStatus, PaymentMethod, PaymentStatus
from drivedesk.domain.snapshot import SchoolStore
from drivedesk.services.class_service import ClassInput, save_class
from drivedesk.services.document_store import DocumentStore
from drivedesk.services.student_service import StudentInput, create_student


Base.metadata.create_all(bind=engine)

store = SchoolStore(DocumentStore(SessionLocal))
store.start()
try:
    if not store.snapshot().students:
        seeds = [
            StudentInput(first_name='Lucia', last_name='Gomez', phone='1155550001', price_per_class=15000, promo_packs=1),
            StudentInput(first_name='Martin', last_name='Perez', phone='1155550002', price_per_class=15000),
            StudentInput(first_name='Sofia', last_name='Ruiz', phone='1155550003', price_per_class=18000),
        ]
        student_ids = [create_student(store, seed).id for seed in seeds]

        today = default_time_provider.today()
        for offset, student_id in enumerate(student_ids):
            for week in range(3):
                day = today - timedelta(days=7 * (2 - week) + offset)
                paid = week < 2
                save_class(
                    store,
                    ClassInput(
                        student_id=student_id,
                        date=day,
                        start_time='09:00' if offset % 2 == 0 else '17:30',
                        duration_minutes=60,
                        status=ClassStatus.COMPLETED if day < today else ClassStatus.SCHEDULED,
                        payment_status=PaymentStatus.PAID if paid else PaymentStatus.PENDING,
                        payment_method=PaymentMethod.CASH if paid else None,
                        price=15000,
                    ),
                )
finally:
    store.stop()

print('DB initialized with sample data.')
