import unittest
from datetime import date
from unittest.mock import patch

from fastapi.testclient import TestClient

from fitplan.api.auth import get_current_user
from fitplan.database import get_db
from fitplan.exceptions import CollaboratorFailure, RateLimited
from fitplan.main import app
from fitplan.schemas.plan import PersonalizationResult
from fitplan.utils.utils import create_access_token
from tests.factories import add_meal_template, make_session, make_user


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.db = make_session()
        self.user = make_user(self.db, tier="paid")
        app.dependency_overrides[get_db] = lambda: self.db
        app.dependency_overrides[get_current_user] = lambda: self.user
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.db.close()


class TestPlansApi(ApiTestCase):

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    @patch("fitplan.api.plans.personalize_for_date")
    def test_personalize(self, mock_personalize):
        mock_personalize.return_value = PersonalizationResult(success=True, count=3, fallback_used=["l1"])
        response = self.client.post("/plans/personalize", json={"date": "2024-01-01"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["fallback_used"], ["l1"])
        self.assertEqual(mock_personalize.call_args.args[2], date(2024, 1, 1))

    @patch("fitplan.api.plans.personalize_for_date")
    def test_collaborator_failure_is_503(self, mock_personalize):
        mock_personalize.side_effect = CollaboratorFailure("model down")
        response = self.client.post("/plans/personalize", json={})
        self.assertEqual(response.status_code, 503)
        self.assertTrue(response.json()["retryable"])

    @patch("fitplan.api.plans.personalize_for_date")
    def test_rate_limited_is_429(self, mock_personalize):
        mock_personalize.side_effect = RateLimited("AI limit reached", 30)
        response = self.client.post("/plans/personalize", json={})
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.headers["Retry-After"], "30")

    def test_week_without_templates_is_400(self):
        response = self.client.post("/plans/week", json={"start_date": "2024-01-07"})
        self.assertEqual(response.status_code, 400)

    def test_week_then_read_and_complete(self):
        add_meal_template(self.db, "l1", "lunch", 600)
        response = self.client.post("/plans/week", json={"start_date": "2024-01-07"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["slots_filled"], 21)

        plan = self.client.get("/plans/2024-01-07")
        self.assertEqual(plan.status_code, 200)
        slots = plan.json()["slots"]
        self.assertEqual(len(slots), 3)

        done = self.client.post(f"/plans/slots/{slots[0]['slot_id']}/complete")
        self.assertEqual(done.status_code, 200)
        self.assertTrue(done.json()["is_completed"])
        self.assertTrue(done.json()["item_completed"])

    def test_missing_plan_is_404(self):
        response = self.client.get("/plans/2030-01-01")
        self.assertEqual(response.status_code, 404)

    def test_missing_slot_is_404(self):
        response = self.client.post("/plans/slots/999/complete")
        self.assertEqual(response.status_code, 404)


class TestAdjustmentsApi(ApiTestCase):

    def test_log_dining_out(self):
        response = self.client.post("/deviations", json={
            "deviation_type": "dining_out", "reason": "dining_out", "impact_calories": 300,
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["adjustment_result"]["adjustments_applied"], 1)

    def test_invalid_deviation_is_400(self):
        response = self.client.post("/deviations", json={"deviation_type": "nap", "reason": "time"})
        self.assertEqual(response.status_code, 400)

    def test_apply_requires_paid_tier(self):
        self.user.profile.subscription_tier = "free"
        self.db.commit()
        response = self.client.post("/adjustments/apply", json={"triggered_by": "manual"})
        self.assertEqual(response.status_code, 403)
        self.assertTrue(response.json()["detail"]["requires_manual"])

    def test_apply_nothing_to_do(self):
        response = self.client.post("/adjustments/apply", json={})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["adjustments_applied"], 0)

    def test_checkin(self):
        response = self.client.post("/checkins", json={"meal_adherence": "most"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(date.fromisoformat(response.json()["week_start"]).isoweekday(), 7)

    def test_streak(self):
        response = self.client.get("/streak")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["current_streak"], 0)


class TestCookieAuth(unittest.TestCase):

    def setUp(self):
        self.db = make_session()
        self.user = make_user(self.db, email="cookie@example.com")
        app.dependency_overrides[get_db] = lambda: self.db
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.db.close()

    def test_valid_cookie(self):
        self.client.cookies.set("access_token", create_access_token({"sub": "cookie@example.com"}))
        self.assertEqual(self.client.get("/streak").status_code, 200)

    def test_bad_cookie(self):
        self.client.cookies.set("access_token", "not-a-token")
        self.assertEqual(self.client.get("/streak").status_code, 401)

    def test_unknown_user(self):
        self.client.cookies.set("access_token", create_access_token({"sub": "ghost@example.com"}))
        self.assertEqual(self.client.get("/streak").status_code, 401)


if __name__ == '__main__':
    unittest.main()
