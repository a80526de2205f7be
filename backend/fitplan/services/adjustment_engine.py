import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fitplan.config import DEFAULT_DINING_OUT_IMPACT
from fitplan.crud.constraints import get_constraints
from fitplan.crud.deviation import get_recent_checkins, get_recent_deviations
from fitplan.models.adjustment_record import AdjustmentRecord
from fitplan.models.deviation_event import DeviationEvent
from fitplan.models.user_profile import UserProfile
from fitplan.schemas.adjustment import AdjustmentItem, AdjustmentOutcome
from fitplan.services.entitlement_service import AUTO_ADJUST, check_entitlement
from fitplan.services.plan_events import RefreshEvent, plan_refresh_bus
from fitplan.utils.utils import get_user_today

logger = logging.getLogger(__name__)

"""
Adjustment Engine
-----------------
Rule-based changes to a user's standing constraints, applied before the next
plan is generated. Rules run in order; each one that fires sees the
constraints as left by the rules before it. Every fired rule writes one
AdjustmentRecord; the constraint row itself is written once at the end.
"""


class AdjustmentContext(NamedTuple):
    deviations: List[DeviationEvent]
    constraints: Dict[str, Any]
    checkins: List[Any]
    now: datetime
    today: date


class RuleResult(NamedTuple):
    new_constraints: Dict[str, Any]
    reason: str
    adjustment_type: str
    compensated_event_ids: Tuple[int, ...] = ()


class AdjustmentRule(NamedTuple):
    name: str
    condition: Callable[[AdjustmentContext], bool]
    apply: Callable[[AdjustmentContext], RuleResult]


def _within(event: DeviationEvent, ctx: AdjustmentContext, days: int) -> bool:
    return event.created_at is not None and event.created_at > ctx.now - timedelta(days=days)


def _of_type(ctx: AdjustmentContext, *types: str) -> List[DeviationEvent]:
    return [d for d in ctx.deviations if d.deviation_type in types]


def _uncompensated_dining_out(ctx: AdjustmentContext) -> List[DeviationEvent]:
    return [d for d in _of_type(ctx, "dining_out") if not d.auto_adjusted]


# --- Rule 1 ---
def _frequency_condition(ctx: AdjustmentContext) -> bool:
    skipped = [d for d in _of_type(ctx, "skipped_workout") if _within(d, ctx, 14)]
    return len(skipped) >= 3


def _frequency_apply(ctx: AdjustmentContext) -> RuleResult:
    current = ctx.constraints.get("workouts_per_week") or 3
    return RuleResult(
        {**ctx.constraints, "workouts_per_week": max(2, current - 1)},
        "Reduced workout frequency due to repeated skipped workouts",
        "workout_frequency_reduction",
    )


# --- Rule 2 ---
def _duration_condition(ctx: AdjustmentContext) -> bool:
    time_based = [d for d in _of_type(ctx, "skipped_workout", "shortened_workout") if d.reason == "time"]
    return len(time_based) >= 2


def _duration_apply(ctx: AdjustmentContext) -> RuleResult:
    current = ctx.constraints.get("workout_duration_minutes") or 45
    return RuleResult(
        {**ctx.constraints, "workout_duration_minutes": max(20, current - 15)},
        "Shortened workout duration due to time constraints",
        "workout_duration_reduction",
    )


# --- Rule 3 ---
def _budget_condition(ctx: AdjustmentContext) -> bool:
    return len(_of_type(ctx, "budget_exceeded")) >= 1


def _budget_apply(ctx: AdjustmentContext) -> RuleResult:
    return RuleResult(
        {**ctx.constraints, "budget_tier": "low", "prefer_cheap_proteins": True},
        "Switched to budget-friendly meal options after budget exceeded",
        "budget_tier_reduction",
    )


# --- Rule 4 ---
def _simplify_condition(ctx: AdjustmentContext) -> bool:
    recent = [d for d in ctx.deviations if _within(d, ctx, 7)]
    return len(recent) >= (ctx.constraints.get("simplify_after_deviations") or 3)


def _simplify_apply(ctx: AdjustmentContext) -> RuleResult:
    current = ctx.constraints.get("max_cooking_time_minutes") or 30
    return RuleResult(
        {**ctx.constraints, "max_cooking_time_minutes": min(current, 15), "prefer_simple_meals": True},
        "Simplified meal plans due to repeated deviations",
        "plan_simplification",
    )


# --- Rule 5 ---
def _dining_out_condition(ctx: AdjustmentContext) -> bool:
    return len(_uncompensated_dining_out(ctx)) > 0


def _dining_out_apply(ctx: AdjustmentContext) -> RuleResult:
    uncompensated = _uncompensated_dining_out(ctx)
    excess = sum(
        d.impact_calories if d.impact_calories is not None else DEFAULT_DINING_OUT_IMPACT
        for d in uncompensated
    )

    # Daily-reset: yesterday's deficit does not roll into today
    existing = 0
    if ctx.constraints.get("calorie_deficit_date") == ctx.today:
        existing = ctx.constraints.get("calorie_deficit_today") or 0

    return RuleResult(
        {
            **ctx.constraints,
            "calorie_deficit_today": int(round(existing + excess)),
            "calorie_deficit_date": ctx.today,
        },
        f"Compensating for {len(uncompensated)} dining out event(s)",
        "dining_out_compensation",
        tuple(d.id for d in uncompensated),
    )


ADJUSTMENT_RULES: List[AdjustmentRule] = [
    AdjustmentRule("reduce_workout_frequency", _frequency_condition, _frequency_apply),
    AdjustmentRule("reduce_workout_duration", _duration_condition, _duration_apply),
    AdjustmentRule("budget_adjustment", _budget_condition, _budget_apply),
    AdjustmentRule("simplify_plans", _simplify_condition, _simplify_apply),
    AdjustmentRule("dining_out_compensation", _dining_out_condition, _dining_out_apply),
]


def run_rules(ctx: AdjustmentContext, rules: List[AdjustmentRule] = ADJUSTMENT_RULES):
    """
    Pure pass over the rules. Returns [(rule, before, result)] for every rule
    that fired, `before` being the constraints that rule was applied to.
    """
    fired = []
    current = dict(ctx.constraints)
    for rule in rules:
        rule_ctx = ctx._replace(constraints=current)
        if not rule.condition(rule_ctx):
            continue
        result = rule.apply(rule_ctx)
        fired.append((rule, current, result))
        current = result.new_constraints
    return fired


def snapshot(constraints: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-safe copy of a constraint dict."""
    return {
        key: value.isoformat() if isinstance(value, (date, datetime)) else value
        for key, value in constraints.items()
    }


def apply_adjustments(
    db: Session,
    user_id: int,
    triggered_by: str = "auto",
    entitlement_check=check_entitlement,
    now: Optional[datetime] = None,
    today: Optional[date] = None,
    refresh_bus=plan_refresh_bus,
) -> AdjustmentOutcome:
    entitlement = entitlement_check(db, user_id, AUTO_ADJUST)
    if not entitlement.get("allowed"):
        logger.info(f"[Adjust] User {user_id} not entitled to auto-adjust (tier={entitlement.get('tier')})")
        return AdjustmentOutcome(
            requires_manual=True,
            tier=entitlement.get("tier"),
            message="Auto-adjustment requires paid subscription. Regenerate your plan manually.",
        )

    now = now or datetime.utcnow()
    if today is None:
        profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
        today = get_user_today(profile) if profile else now.date()

    constraint_row = get_constraints(db, user_id)
    ctx = AdjustmentContext(
        deviations=get_recent_deviations(db, user_id),
        constraints=constraint_row.to_dict(),
        checkins=get_recent_checkins(db, user_id),
        now=now,
        today=today,
    )

    fired = run_rules(ctx)
    if not fired:
        logger.info(f"[Adjust] No rules fired for user {user_id} ({triggered_by})")
        return AdjustmentOutcome(
            new_constraints=snapshot(ctx.constraints),
            tier=entitlement.get("tier"),
            message="No adjustments needed",
        )

    final_constraints = fired[-1][2].new_constraints
    compensated_ids = [i for _, _, result in fired for i in result.compensated_event_ids]

    try:
        for rule, before, result in fired:
            db.add(AdjustmentRecord(
                user_id=user_id,
                rule_applied=rule.name,
                adjustment_type=result.adjustment_type,
                reason=result.reason,
                before_state=snapshot(before),
                after_state=snapshot(result.new_constraints),
                triggered_by=triggered_by or "auto",
            ))

        constraint_row.apply_dict(final_constraints)
        db.add(constraint_row)

        if compensated_ids:
            db.query(DeviationEvent).filter(
                DeviationEvent.user_id == user_id,
                DeviationEvent.id.in_(compensated_ids),
            ).update({DeviationEvent.auto_adjusted: True}, synchronize_session="fetch")

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Adjust] Failed to save adjustments for user {user_id}: {e}")
        raise

    names = [rule.name for rule, _, _ in fired]
    logger.info(f"[Adjust] Applied {names} for user {user_id} ({triggered_by})")
    refresh_bus.emit(RefreshEvent.BOTH)

    return AdjustmentOutcome(
        adjustments_applied=len(fired),
        adjustments=[
            AdjustmentItem(rule_name=rule.name, adjustment_type=result.adjustment_type, reason=result.reason)
            for rule, _, result in fired
        ],
        new_constraints=snapshot(final_constraints),
        requires_regeneration=True,
        tier=entitlement.get("tier"),
        message=f"Applied {len(fired)} adjustment(s). Regenerate your plan to see the changes.",
    )
