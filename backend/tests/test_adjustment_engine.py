import unittest
from datetime import date, datetime, timedelta
from types import SimpleNamespace

from fitplan.models.adjustment_record import AdjustmentRecord
from fitplan.models.constraint_set import ConstraintSet, DEFAULT_CONSTRAINTS
from fitplan.models.deviation_event import DeviationEvent
from fitplan.services.adjustment_engine import AdjustmentContext, RuleResult, apply_adjustments, run_rules
from fitplan.services.plan_events import PlanRefreshBus, RefreshEvent
from tests.factories import make_session, make_user

NOW = datetime(2024, 1, 15, 12, 0)
TODAY = date(2024, 1, 15)


class AdjustmentTestCase(unittest.TestCase):

    def setUp(self):
        self.db = make_session()
        self.user = make_user(self.db, tier="paid")
        self.bus = PlanRefreshBus()
        self.events = []
        self.bus.subscribe(self.events.append)

    def tearDown(self):
        self.db.close()

    def deviation(self, deviation_type, reason="other", days_ago=1.0, impact_calories=None, auto_adjusted=False):
        event = DeviationEvent(
            user_id=self.user.id,
            deviation_type=deviation_type,
            reason=reason,
            impact_calories=impact_calories,
            auto_adjusted=auto_adjusted,
            created_at=NOW - timedelta(days=days_ago),
        )
        self.db.add(event)
        self.db.commit()
        return event

    def set_constraints(self, **values):
        self.db.add(ConstraintSet(user_id=self.user.id, **{**DEFAULT_CONSTRAINTS, **values}))
        self.db.commit()

    def apply(self, **kwargs):
        kwargs.setdefault("now", NOW)
        kwargs.setdefault("today", TODAY)
        return apply_adjustments(self.db, self.user.id, refresh_bus=self.bus, **kwargs)

    def stored_constraints(self):
        return self.db.query(ConstraintSet).filter(ConstraintSet.user_id == self.user.id).one()


class TestApplyAdjustments(AdjustmentTestCase):

    def test_only_frequency_rule_fires_for_three_skips(self):
        for days_ago in (8, 10, 13):
            self.deviation("skipped_workout", reason="energy", days_ago=days_ago)

        outcome = self.apply()

        self.assertEqual(outcome.adjustments_applied, 1)
        self.assertEqual(outcome.adjustments[0].rule_name, "reduce_workout_frequency")
        self.assertTrue(outcome.requires_regeneration)
        self.assertEqual(self.stored_constraints().workouts_per_week, 2)
        self.assertEqual(self.events, [RefreshEvent.BOTH])

    def test_skips_outside_window_ignored(self):
        for days_ago in (2, 15, 20):
            self.deviation("skipped_workout", reason="energy", days_ago=days_ago)
        outcome = self.apply()
        self.assertEqual(outcome.adjustments_applied, 0)
        self.assertFalse(outcome.requires_regeneration)
        self.assertEqual(self.events, [])

    def test_dining_out_scenario(self):
        event = self.deviation("dining_out", reason="dining_out", days_ago=0.1, impact_calories=300)

        outcome = self.apply()

        self.assertEqual(outcome.adjustments_applied, 1)
        self.assertEqual(outcome.new_constraints["calorie_deficit_today"], 300)
        stored = self.stored_constraints()
        self.assertEqual(stored.calorie_deficit_today, 300)
        self.assertEqual(stored.calorie_deficit_date, TODAY)
        self.db.refresh(event)
        self.assertTrue(event.auto_adjusted)

        # compensated events are not counted twice
        again = self.apply()
        self.assertEqual(again.adjustments_applied, 0)

    def test_dining_out_default_impact(self):
        self.deviation("dining_out", reason="dining_out")
        self.deviation("dining_out", reason="dining_out", impact_calories=450)
        outcome = self.apply()
        self.assertEqual(outcome.new_constraints["calorie_deficit_today"], 650)

    def test_deficit_resets_on_new_day(self):
        self.set_constraints(calorie_deficit_today=500, calorie_deficit_date=TODAY - timedelta(days=1))
        self.deviation("dining_out", reason="dining_out", impact_calories=300)
        self.apply()
        self.assertEqual(self.stored_constraints().calorie_deficit_today, 300)

    def test_deficit_accumulates_same_day(self):
        self.set_constraints(calorie_deficit_today=500, calorie_deficit_date=TODAY)
        self.deviation("dining_out", reason="dining_out", impact_calories=300)
        self.apply()
        self.assertEqual(self.stored_constraints().calorie_deficit_today, 800)

    def test_rules_thread_constraints(self):
        self.deviation("budget_exceeded", reason="budget", days_ago=1)
        self.deviation("missed_meal", reason="time", days_ago=2)
        self.deviation("dining_out", reason="dining_out", days_ago=3)

        outcome = self.apply(triggered_by="weekly_checkin")

        self.assertEqual(
            [a.rule_name for a in outcome.adjustments],
            ["budget_adjustment", "simplify_plans", "dining_out_compensation"],
        )
        stored = self.stored_constraints()
        self.assertEqual(stored.budget_tier, "low")
        self.assertTrue(stored.prefer_cheap_proteins)
        self.assertEqual(stored.max_cooking_time_minutes, 15)
        self.assertTrue(stored.prefer_simple_meals)
        self.assertEqual(stored.calorie_deficit_today, 200)
        self.assertEqual(self.db.query(ConstraintSet).count(), 1)

        records = self.db.query(AdjustmentRecord).order_by(AdjustmentRecord.id).all()
        self.assertEqual(len(records), 3)
        simplify = records[1]
        # applied to the output of the budget rule, not the original snapshot
        self.assertEqual(simplify.before_state["budget_tier"], "low")
        self.assertEqual(simplify.after_state["max_cooking_time_minutes"], 15)
        self.assertEqual(records[2].after_state["calorie_deficit_date"], "2024-01-15")
        self.assertTrue(all(r.triggered_by == "weekly_checkin" for r in records))

    def test_duration_floor(self):
        self.set_constraints(workout_duration_minutes=30)
        self.deviation("shortened_workout", reason="time", days_ago=20)
        self.deviation("skipped_workout", reason="time", days_ago=30)
        outcome = self.apply()
        self.assertEqual([a.rule_name for a in outcome.adjustments], ["reduce_workout_duration"])
        self.assertEqual(self.stored_constraints().workout_duration_minutes, 20)

    def test_entitlement_denied(self):
        profile = self.user.profile
        profile.subscription_tier = "free"
        self.db.commit()
        event = self.deviation("dining_out", reason="dining_out", impact_calories=300)

        outcome = self.apply()

        self.assertTrue(outcome.requires_manual)
        self.assertEqual(outcome.tier, "free")
        self.assertEqual(outcome.adjustments_applied, 0)
        self.assertEqual(self.db.query(AdjustmentRecord).count(), 0)
        self.assertEqual(self.db.query(ConstraintSet).count(), 0)
        self.db.refresh(event)
        self.assertFalse(event.auto_adjusted)
        self.assertEqual(self.events, [])

    def test_injected_entitlement_check(self):
        self.deviation("budget_exceeded", reason="budget")
        calls = []

        def deny(db, user_id, feature):
            calls.append(feature)
            return {"allowed": False, "tier": "paid"}

        outcome = self.apply(entitlement_check=deny)
        self.assertTrue(outcome.requires_manual)
        self.assertEqual(calls, ["auto_adjust"])


class TestRunRules(unittest.TestCase):

    def ctx(self, deviations, **constraints):
        return AdjustmentContext(
            deviations=deviations,
            constraints={**DEFAULT_CONSTRAINTS, **constraints},
            checkins=[],
            now=NOW,
            today=TODAY,
        )

    def event(self, deviation_type, reason="other", days_ago=1, **kwargs):
        fields = {"id": None, "impact_calories": None, "auto_adjusted": False}
        fields.update(kwargs)
        return SimpleNamespace(deviation_type=deviation_type, reason=reason,
                               created_at=NOW - timedelta(days=days_ago), **fields)

    def test_frequency_floor(self):
        skips = [self.event("skipped_workout", days_ago=d) for d in (8, 9, 10)]
        fired = run_rules(self.ctx(skips, workouts_per_week=2))
        self.assertEqual(fired[0][2].new_constraints["workouts_per_week"], 2)

    def test_simplify_threshold_is_configurable(self):
        events = [self.event("missed_meal", days_ago=d) for d in (1, 2)]
        self.assertEqual(run_rules(self.ctx(events)), [])
        fired = run_rules(self.ctx(events, simplify_after_deviations=2))
        self.assertEqual([rule.name for rule, _, _ in fired], ["simplify_plans"])

    def test_input_constraints_not_mutated(self):
        ctx = self.ctx([self.event("budget_exceeded")])
        run_rules(ctx)
        self.assertEqual(ctx.constraints["budget_tier"], "medium")

    def test_compensated_ids_are_immutable(self):
        fired = run_rules(self.ctx([
            self.event("budget_exceeded"),
            self.event("dining_out", reason="dining_out", id=7, impact_calories=300),
        ]))
        results = {rule.name: result for rule, _, result in fired}
        self.assertEqual(results["budget_adjustment"].compensated_event_ids, ())
        self.assertEqual(results["dining_out_compensation"].compensated_event_ids, (7,))
        self.assertIsInstance(RuleResult({}, "", "").compensated_event_ids, tuple)


if __name__ == '__main__':
    unittest.main()
