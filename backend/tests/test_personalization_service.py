import copy
import unittest
from datetime import date, timedelta

from fitplan.exceptions import CollaboratorFailure, PlanNotFound, RateLimited
from fitplan.models.constraint_set import ConstraintSet, DEFAULT_CONSTRAINTS
from fitplan.models.deviation_event import DeviationEvent
from fitplan.models.personalized_item import PersonalizedItem
from fitplan.models.schedule_slot import ScheduleSlot
from fitplan.models.template import MEAL, WORKOUT, Template
from fitplan.services.adjustment_engine import apply_adjustments
from fitplan.services.personalization_service import (
    get_plan_for_date, personalize_for_date, personalize_workouts, workout_days,
)
from fitplan.services.plan_events import PlanRefreshBus, RefreshEvent
from tests.factories import (
    AllowAll, FakeCustomizationClient, add_meal_template, add_workout_template, make_session, make_user,
    set_timezone, timezone_off_server_day,
)

DAY = date(2024, 1, 1)  # Monday


class PersonalizationTestCase(unittest.TestCase):

    def setUp(self):
        self.db = make_session()
        self.user = make_user(self.db)
        for slot, calories in (("breakfast", 400), ("lunch", 600), ("dinner", 800)):
            add_meal_template(self.db, f"{slot[0]}1", slot, calories)
            add_meal_template(self.db, f"{slot[0]}2", slot, calories + 50)
        self.bus = PlanRefreshBus()
        self.events = []
        self.bus.subscribe(self.events.append)

    def tearDown(self):
        self.db.close()

    def personalize(self, client, day=DAY, **kwargs):
        kwargs.setdefault("limiter", AllowAll())
        return personalize_for_date(self.db, self.user.id, day, client=client, refresh_bus=self.bus, **kwargs)

    def meal_items(self):
        return self.db.query(PersonalizedItem).filter(PersonalizedItem.kind == MEAL).all()


class TestPersonalizeForDate(PersonalizationTestCase):

    def test_valid_candidates_persist_verbatim(self):
        client = FakeCustomizationClient()
        result = self.personalize(client)

        self.assertTrue(result.success)
        self.assertEqual(result.count, 3)
        self.assertEqual(result.fallback_used, [])
        self.assertEqual(self.events, [RefreshEvent.MEALS])

        sent = {i["template_id"]: i["content"] for i in client.calls[0]["items"]}
        for item in self.meal_items():
            self.assertFalse(item.is_fallback)
            self.assertEqual(item.personalized_data, sent[item.base_template_id])
        labels = sorted(s.slot_label for s in self.db.query(ScheduleSlot).all())
        self.assertEqual(labels, ["breakfast", "dinner", "lunch"])

    def test_no_template_repeats_within_batch(self):
        client = FakeCustomizationClient()
        self.personalize(client)
        ids = [i["template_id"] for i in client.calls[0]["items"]]
        self.assertEqual(len(ids), len(set(ids)))

    def test_supplied_totals_kept(self):
        def respond(items):
            return [{"template_id": i["template_id"], "personalized_data": i["content"],
                     "total_calories": 555, "total_protein": 40, "total_carbs": 50, "total_fats": 12}
                    for i in items]
        self.personalize(FakeCustomizationClient(respond=respond))
        for item in self.meal_items():
            self.assertEqual(item.total_calories, 555)
            self.assertEqual(item.total_protein, 40)

    def test_invalid_slot_falls_back_to_scaled_template(self):
        def respond(items):
            out = []
            for i in items:
                data = copy.deepcopy(i["content"])
                if i["slot"] == "lunch":
                    for ing in data["ingredients"]:
                        ing["calories"] = 5000
                out.append({"template_id": i["template_id"], "personalized_data": data})
            return out

        client = FakeCustomizationClient(respond=respond)
        result = self.personalize(client)

        lunch_id = next(i["template_id"] for i in client.calls[0]["items"] if i["slot"] == "lunch")
        self.assertTrue(result.success)
        self.assertEqual(result.count, 3)
        self.assertEqual(result.fallback_used, [lunch_id])

        lunch = next(i for i in self.meal_items() if i.slot_label == "lunch")
        self.assertTrue(lunch.is_fallback)
        # 2000 * 0.35
        self.assertLessEqual(abs(lunch.total_calories - 700), 1)
        others = [i for i in self.meal_items() if i.slot_label != "lunch"]
        self.assertTrue(all(not i.is_fallback for i in others))

    def test_safety_violation_falls_back_and_logs_warning(self):
        profile = self.user.profile
        profile.allergies = ["chicken"]
        self.db.commit()

        with self.assertLogs("fitplan.services.personalization_service", level="WARNING") as logs:
            result = self.personalize(FakeCustomizationClient())

        self.assertEqual(len(result.fallback_used), 3)
        self.assertTrue(any("Safety violation" in line for line in logs.output))

    def test_missing_template_ids_pair_by_position(self):
        def respond(items):
            return [{"personalized_data": i["content"]} for i in items]
        result = self.personalize(FakeCustomizationClient(respond=respond))
        self.assertEqual(result.fallback_used, [])
        self.assertEqual(result.count, 3)

    def test_missing_candidate_falls_back(self):
        def respond(items):
            return [{"template_id": i["template_id"], "personalized_data": i["content"]} for i in items[:2]]
        client = FakeCustomizationClient(respond=respond)
        result = self.personalize(client)
        self.assertEqual(result.fallback_used, [client.calls[0]["items"][2]["template_id"]])

    def test_collaborator_failure_writes_nothing(self):
        self.personalize(FakeCustomizationClient())
        before = {i.id for i in self.meal_items()}
        self.events.clear()

        with self.assertRaises(CollaboratorFailure):
            self.personalize(FakeCustomizationClient(fail=True))

        self.assertEqual({i.id for i in self.meal_items()}, before)
        self.assertEqual(self.events, [])

    def test_regeneration_replaces_previous_plan(self):
        self.personalize(FakeCustomizationClient())
        self.personalize(FakeCustomizationClient())
        self.assertEqual(len(self.meal_items()), 3)
        self.assertEqual(self.db.query(ScheduleSlot).count(), 3)

    def test_other_dates_untouched(self):
        self.personalize(FakeCustomizationClient(), day=date(2024, 1, 2))
        self.personalize(FakeCustomizationClient())
        self.assertEqual(len(self.meal_items()), 6)

    def test_regeneration_is_deterministic(self):
        first = FakeCustomizationClient()
        second = FakeCustomizationClient()
        self.personalize(first)
        self.personalize(second)
        self.assertEqual(
            [i["template_id"] for i in first.calls[0]["items"]],
            [i["template_id"] for i in second.calls[0]["items"]],
        )

    def test_deficit_applies_only_on_its_date(self):
        self.db.add(ConstraintSet(user_id=self.user.id, **{
            **DEFAULT_CONSTRAINTS, "calorie_deficit_today": 300, "calorie_deficit_date": DAY,
        }))
        self.db.commit()

        client = FakeCustomizationClient()
        self.personalize(client)
        self.personalize(client, day=date(2024, 1, 2))
        self.assertEqual(client.calls[0]["context"]["daily_calories"], 1700)
        self.assertEqual(client.calls[1]["context"]["daily_calories"], 2000)

    def test_rate_limited(self):
        class DenyAll:
            def check(self, user_id):
                return {"allowed": False, "message": "AI limit reached", "wait_seconds": 42}

        client = FakeCustomizationClient()
        with self.assertRaises(RateLimited) as ctx:
            self.personalize(client, limiter=DenyAll())
        self.assertEqual(ctx.exception.wait_seconds, 42)
        self.assertEqual(client.calls, [])

    def test_missing_profile(self):
        with self.assertRaises(PlanNotFound):
            personalize_for_date(self.db, 999, DAY, client=FakeCustomizationClient(), limiter=AllowAll())

    def test_no_selectable_slot_skips_collaborator(self):
        class CountingLimiter(AllowAll):
            checks = 0

            def check(self, user_id):
                CountingLimiter.checks += 1
                return super().check(user_id)

        self.db.query(Template).update({Template.is_active: False}, synchronize_session="fetch")
        add_meal_template(self.db, "s1", "snack", 200)

        client = FakeCustomizationClient()
        with self.assertRaises(ValueError):
            self.personalize(client, limiter=CountingLimiter())
        self.assertEqual(client.calls, [])
        self.assertEqual(CountingLimiter.checks, 0)
        self.assertEqual(self.meal_items(), [])


class TestUserLocalDay(PersonalizationTestCase):
    """Without an explicit date, plans land on the user's own calendar day."""

    def setUp(self):
        super().setUp()
        tz_name, self.local_day = timezone_off_server_day()
        set_timezone(self.db, self.user, tz_name, tier="paid")

    def test_dining_out_deficit_reaches_default_day(self):
        self.db.add(DeviationEvent(
            user_id=self.user.id, deviation_type="dining_out", reason="dining_out", impact_calories=600,
        ))
        self.db.commit()
        apply_adjustments(self.db, self.user.id, refresh_bus=self.bus)

        client = FakeCustomizationClient()
        personalize_for_date(self.db, self.user.id, client=client, limiter=AllowAll(), refresh_bus=self.bus)

        self.assertEqual(client.calls[0]["context"]["daily_calories"], 1400)
        dates = {s.date for s in self.db.query(ScheduleSlot).all()}
        self.assertEqual(dates, {self.local_day})

    def test_workout_week_starts_on_local_day(self):
        add_workout_template(self.db, "w1")
        personalize_workouts(self.db, self.user.id, client=FakeCustomizationClient(),
                             limiter=AllowAll(), refresh_bus=self.bus)

        dates = [s.date for s in self.db.query(ScheduleSlot).filter(ScheduleSlot.kind == WORKOUT).all()]
        self.assertTrue(dates)
        for day in dates:
            self.assertTrue(self.local_day <= day < self.local_day + timedelta(days=7))


class TestPlanRead(PersonalizationTestCase):

    def test_get_plan_for_date(self):
        self.personalize(FakeCustomizationClient())
        plan = get_plan_for_date(self.db, self.user.id, DAY)
        self.assertEqual(len(plan.slots), 3)
        self.assertEqual(plan.total_calories, sum(i.total_calories for i in self.meal_items()))

    def test_missing_plan(self):
        with self.assertRaises(PlanNotFound):
            get_plan_for_date(self.db, self.user.id, DAY)


class TestPersonalizeWorkouts(PersonalizationTestCase):

    def setUp(self):
        super().setUp()
        for i in range(1, 5):
            add_workout_template(self.db, f"w{i}", duration=45)
        add_workout_template(self.db, "r1", duration=20, is_active_recovery=True)

    def test_three_workouts_on_mon_wed_fri(self):
        client = FakeCustomizationClient()
        result = personalize_workouts(self.db, self.user.id, DAY, client=client,
                                      limiter=AllowAll(), refresh_bus=self.bus)

        self.assertEqual(result.count, 3)
        self.assertEqual(result.plan_type, WORKOUT)
        self.assertEqual(self.events, [RefreshEvent.WORKOUTS])
        slots = self.db.query(ScheduleSlot).filter(ScheduleSlot.kind == WORKOUT).order_by(ScheduleSlot.date).all()
        self.assertEqual([s.slot_label for s in slots], ["1", "3", "5"])
        self.assertEqual([s.date for s in slots], [date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 5)])
        self.assertNotIn("r1", [i["template_id"] for i in client.calls[0]["items"]])

    def test_count_capped_by_pool(self):
        self.db.add(ConstraintSet(user_id=self.user.id, **{**DEFAULT_CONSTRAINTS, "workouts_per_week": 6}))
        self.db.commit()
        result = personalize_workouts(self.db, self.user.id, DAY, client=FakeCustomizationClient(),
                                      limiter=AllowAll(), refresh_bus=self.bus)
        self.assertEqual(result.count, 4)

    def test_invalid_workout_falls_back_to_duration_target(self):
        self.db.add(ConstraintSet(user_id=self.user.id, **{**DEFAULT_CONSTRAINTS, "workout_duration_minutes": 90}))
        self.db.commit()

        def respond(items):
            return [{"template_id": i["template_id"], "personalized_data": {"workout_name": "x", "exercises": []}}
                    for i in items]

        result = personalize_workouts(self.db, self.user.id, DAY, client=FakeCustomizationClient(respond=respond),
                                      limiter=AllowAll(), refresh_bus=self.bus)
        self.assertEqual(len(result.fallback_used), 3)
        item = self.db.query(PersonalizedItem).filter(PersonalizedItem.kind == WORKOUT).first()
        # 45 -> 90 minutes doubles sets
        self.assertEqual(item.personalized_data["exercises"][0]["sets"], 8)

    def test_workout_days_wrap_into_next_week(self):
        self.assertEqual(
            workout_days(date(2024, 1, 3), 3),
            [date(2024, 1, 3), date(2024, 1, 5), date(2024, 1, 8)],
        )
        self.assertEqual(workout_days(DAY, 0), [])


if __name__ == '__main__':
    unittest.main()
