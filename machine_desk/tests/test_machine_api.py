import unittest
from datetime import date

from fake_backend import make_sqlite_sessionmaker, seed_sqlite

from fastapi.testclient import TestClient
from sqlalchemy import select

import MachineDesk as app_module
from models.rental_models import Machine, Rental
from services.errors import GatewayError


class MachineApiTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.session_factory = make_sqlite_sessionmaker()
        seed_sqlite(self.session_factory)

        def _override():
            db = self.session_factory()
            try:
                yield db
            finally:
                db.close()

        app_module.app.dependency_overrides[app_module.get_rental_db] = _override
        self.client = TestClient(app_module.app)

    def tearDown(self):
        app_module.app.dependency_overrides.clear()
        self.engine.dispose()

    def _rentals(self, machine_id):
        with self.session_factory() as db:
            return db.execute(select(Rental).where(Rental.machine_id == machine_id)).scalars().all()

    def _machine_status(self, machine_id):
        with self.session_factory() as db:
            return db.get(Machine, machine_id).status

    def test_healthchecks(self):
        self.assertEqual(self.client.get("/healthz").json(), {"status": "ok"})
        self.assertEqual(self.client.get("/api/healthz").json(), {"status": "ok"})

    def test_page_without_machine_id_shows_error_view(self):
        response = self.client.get("/api/page")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["view"], "error")

    def test_page_for_unknown_machine_shows_error_view(self):
        body = self.client.get("/api/page", params={"machine_id": "M-100"}).json()
        self.assertEqual(body["view"], "error")
        self.assertNotIn("machine", body)
        self.assertNotIn("display", body)

    def test_page_reports_gateway_failure_as_error_view(self):
        original = app_module.resolve_machine

        def _failing(gateway, machine_id):
            raise GatewayError("connection reset")

        app_module.resolve_machine = _failing
        try:
            body = self.client.get("/api/page", params={"machine_id": "M-200"}).json()
        finally:
            app_module.resolve_machine = original
        self.assertEqual(body["view"], "error")

    def test_page_for_rented_machine(self):
        body = self.client.get("/api/page", params={"machine_id": "M-200"}).json()
        self.assertEqual(body["view"], "info")
        self.assertTrue(body["machine"]["is_rented"])
        self.assertEqual(body["machine"]["status"], "available")
        self.assertEqual(body["display"]["rentalInfo"]["customerName"], "Acme")
        self.assertIn("checkin", body["display"]["controls"])
        self.assertNotIn("checkout", body["display"]["controls"])

    def test_get_machine_not_found(self):
        response = self.client.get("/api/machines/M-100")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Machine not found")

    def test_get_machine_returns_merged_view(self):
        response = self.client.get("/api/machines/M-200")
        self.assertEqual(response.status_code, 200)
        machine = response.json()["machine"]
        self.assertEqual(machine["model_name"], "CAT 320")
        self.assertEqual(machine["rental_data"]["operator_name"], "Dana Reyes")
        self.assertEqual(machine["effective_status"], "Rented")

    def test_checkout_validation_blocks_writes(self):
        response = self.client.post(
            "/api/machines/M-300/checkout",
            json={"customerID": 2, "operatorID": "", "startDate": "2026-10-19", "expectedReturnDate": ""},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("operator", response.json()["detail"])
        self.assertIn("expected return date", response.json()["detail"])
        self.assertEqual(self._rentals("M-300"), [])
        self.assertEqual(self._machine_status("M-300"), "Rented")

    def test_checkout_creates_active_rental_and_returns_fresh_view(self):
        response = self.client.post(
            "/api/machines/M-300/checkout",
            json={"customerID": 2, "operatorID": 1, "startDate": "2026-10-19", "expectedReturnDate": "2026-11-02"},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["message"], "Machine checked out successfully!")
        self.assertTrue(body["machine"]["is_rented"])
        self.assertEqual(body["machine"]["rental_data"]["customer_name"], "Bolt Works")
        self.assertEqual(body["display"]["controls"], ["checkin", "maintenance"])

        rentals = self._rentals("M-300")
        self.assertEqual(len(rentals), 1)
        self.assertEqual(rentals[0].rental_status, "Active")
        self.assertEqual(rentals[0].expected_return_date, date(2026, 11, 2))
        self.assertEqual(self._machine_status("M-300"), "Rented")

    def test_checkin_requires_confirmation(self):
        response = self.client.post("/api/machines/M-200/checkin", json={})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._rentals("M-200")[0].rental_status, "Active")

    def test_checkin_completes_rental(self):
        response = self.client.post("/api/machines/M-200/checkin", json={"confirmed": True})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertFalse(body["machine"]["is_rented"])
        self.assertIn("checkout", body["display"]["controls"])

        rental = self._rentals("M-200")[0]
        self.assertEqual(rental.rental_status, "Completed")
        self.assertEqual(rental.actual_return_date, date.today())
        self.assertEqual(self._machine_status("M-200"), "Available")

    def test_maintenance_touches_only_machine_status(self):
        response = self.client.post("/api/machines/M-200/maintenance", json={"confirmed": True})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._machine_status("M-200"), "maintenance")
        rentals = self._rentals("M-200")
        self.assertEqual(len(rentals), 1)
        self.assertEqual(rentals[0].rental_status, "Active")
        self.assertIsNone(rentals[0].actual_return_date)

    def test_action_on_unknown_machine_is_404(self):
        response = self.client.post("/api/machines/M-100/maintenance", json={"confirmed": True})
        self.assertEqual(response.status_code, 404)

    def test_selection_lists_sorted_by_name(self):
        customers = self.client.get("/api/customers").json()
        self.assertEqual(
            customers,
            [{"customerID": 1, "name": "Acme"}, {"customerID": 2, "name": "Bolt Works"}],
        )
        operators = self.client.get("/api/operators").json()
        self.assertEqual(operators, [{"operatorID": 1, "name": "Dana Reyes"}])


if __name__ == "__main__":
    unittest.main()
