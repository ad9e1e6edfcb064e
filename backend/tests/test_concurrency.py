# Overview: Threaded concurrency tests for slot capacity and stock safeguards.

"""
Concurrency tests against a file-backed SQLite database.

Each worker runs in its own thread with its own app context (and so its own
session). They verify that the guarded updates hold under real contention:
- a slot never takes more bookings than its capacity
- one user can not hold two live bookings at the same time
- stock never goes negative when two approvals compete for the same part
- a double-submitted approval deducts stock only once
"""
import os
import tempfile
import threading
import unittest
from datetime import time

from autoshop import create_app
from autoshop.config import TestConfig
from autoshop.errors import (
    AlreadyProcessedError,
    DuplicateBookingError,
    InsufficientStockError,
    SlotUnavailableError,
)
from autoshop.extensions import db
from autoshop.models import Appointment, Part, User
from autoshop.services import appointment_service, calendar_service
from autoshop.services.appointment_schemas import PartRequest, StatusDecision

from conftest import future_weekday


DESCRIPTION = "Gearbox grinds when shifting"


def _approval():
    return StatusDecision(status="approved", estimated_price_cents=15000, warranty_months=6)


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")

        class ConcurrencyConfig(TestConfig):
            SQLALCHEMY_DATABASE_URI = f"sqlite:///{db_path}"
            SQLALCHEMY_ENGINE_OPTIONS = {
                "connect_args": {"check_same_thread": False, "timeout": 30},
            }

        self.app = create_app(ConcurrencyConfig)
        self.day = future_weekday()

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            self.user_ids = []
            for i in range(6):
                user = User(
                    email=f"concurrent{i}@example.com",
                    first_name="Concurrent",
                    last_name=str(i),
                    role="client",
                    password_hash="dummy",
                )
                db.session.add(user)
                db.session.commit()
                self.user_ids.append(user.id)

            admin = User(
                email="admin@example.com",
                first_name="Concurrent",
                last_name="Admin",
                role="admin",
                password_hash="dummy",
            )
            db.session.add(admin)

            part = Part(
                name="Clutch kit",
                part_number="CK-1",
                category="Transmission",
                price_cents=25000,
                stock_quantity=3,
                minimum_stock_level=1,
            )
            db.session.add(part)
            db.session.commit()
            self.admin_id = admin.id
            self.part_id = part.id

            calendar_service.ensure_day_materialized(self.day)

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_threads(self, targets):
        threads = [threading.Thread(target=target) for target in targets]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    def _book(self, user_id, at):
        with self.app.app_context():
            appointment = appointment_service.create_appointment(
                user_id=user_id,
                date=self.day.isoformat(),
                time=at,
                description=DESCRIPTION,
            )
            return appointment.id

    def test_slot_capacity_under_contention(self):
        booked = []
        errors = []
        lock = threading.Lock()

        def worker(user_id):
            with self.app.app_context():
                try:
                    appointment = appointment_service.create_appointment(
                        user_id=user_id,
                        date=self.day.isoformat(),
                        time="10:00",
                        description=DESCRIPTION,
                    )
                    with lock:
                        booked.append(appointment.id)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        self._run_threads([lambda uid=uid: worker(uid) for uid in self.user_ids])

        self.assertEqual(len(booked), 2)
        self.assertEqual(len(errors), 4)
        self.assertTrue(all(isinstance(e, SlotUnavailableError) for e in errors), errors)

        with self.app.app_context():
            slot = calendar_service.find_slot(self.day, time(10))
            self.assertEqual(slot.current_appointments, 2)
            self.assertEqual(db.session.query(Appointment).count(), 2)

    def test_same_user_books_the_same_time_once(self):
        results = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    appointment_service.create_appointment(
                        user_id=self.user_ids[0],
                        date=self.day.isoformat(),
                        time="15:00",
                        description=DESCRIPTION,
                    )
                    with lock:
                        results.append("ok")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        self._run_threads([worker, worker])

        self.assertEqual(results.count("ok"), 1)
        failures = [r for r in results if r != "ok"]
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], DuplicateBookingError)

        with self.app.app_context():
            self.assertEqual(db.session.query(Appointment).count(), 1)
            self.assertEqual(calendar_service.find_slot(self.day, time(15)).current_appointments, 1)

    def test_competing_approvals_never_oversell(self):
        first = self._book(self.user_ids[0], "09:00")
        second = self._book(self.user_ids[1], "11:00")

        results = []
        lock = threading.Lock()

        def worker(appointment_id):
            with self.app.app_context():
                try:
                    appointment_service.update_status_with_parts(
                        appointment_id,
                        _approval(),
                        [PartRequest(part_id=self.part_id, quantity=2)],
                        actor_id=self.admin_id,
                    )
                    with lock:
                        results.append("ok")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        self._run_threads([lambda: worker(first), lambda: worker(second)])

        self.assertEqual(results.count("ok"), 1)
        failures = [r for r in results if r != "ok"]
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], InsufficientStockError)

        with self.app.app_context():
            part = db.session.get(Part, self.part_id)
            self.assertEqual(part.stock_quantity, 1)
            statuses = sorted(a.status for a in db.session.query(Appointment).all())
            self.assertEqual(statuses, ["approved", "pending"])

    def test_double_approval_deducts_once(self):
        appointment_id = self._book(self.user_ids[0], "14:00")

        results = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    appointment_service.update_status_with_parts(
                        appointment_id,
                        _approval(),
                        [PartRequest(part_id=self.part_id, quantity=1)],
                        actor_id=self.admin_id,
                    )
                    with lock:
                        results.append("ok")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        self._run_threads([worker, worker])

        self.assertEqual(results.count("ok"), 1)
        failures = [r for r in results if r != "ok"]
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], AlreadyProcessedError)

        with self.app.app_context():
            part = db.session.get(Part, self.part_id)
            self.assertEqual(part.stock_quantity, 2)


if __name__ == "__main__":
    unittest.main()
