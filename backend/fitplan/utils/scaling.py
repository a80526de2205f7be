import copy
from typing import Any, Dict, Optional

from fitplan.models.template import WORKOUT

"""
Template Scaling
----------------
Proportional rescaling of structured template content to a numeric target
(calories for meals, minutes for workouts). Used directly by the weekly
allocator and as the deterministic fallback when an AI customization is
rejected by the validator.
"""

# Bounds mirrored from the validator so a scaled fallback always passes
WORKOUT_SETS_MAX = 20
WORKOUT_REPS_MAX = 100


def _to_number(value: Any) -> Optional[float]:
    """Numeric value of a JSON leaf, or None if it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _num_or_zero(value: Any) -> float:
    number = _to_number(value)
    return number if number is not None else 0.0


def scale_meal_data(data: Dict[str, Any], ratio: float) -> Dict[str, Any]:
    """Multiply every ingredient leaf by ratio. Mass/calories to whole units, macros to 0.1 g."""
    ingredients = data.get("ingredients")
    if isinstance(ingredients, list):
        for ing in ingredients:
            if not isinstance(ing, dict):
                continue
            ing["grams"] = int(round(_num_or_zero(ing.get("grams")) * ratio))
            ing["calories"] = int(round(_num_or_zero(ing.get("calories")) * ratio))
            ing["protein_g"] = round(_num_or_zero(ing.get("protein_g")) * ratio, 1)
            ing["carbs_g"] = round(_num_or_zero(ing.get("carbs_g")) * ratio, 1)
            ing["fats_g"] = round(_num_or_zero(ing.get("fats_g")) * ratio, 1)
    return data


def scale_workout_data(data: Dict[str, Any], ratio: float) -> Dict[str, Any]:
    """
    Multiply sets/reps/rest by ratio, keeping sets and reps inside the
    validator's bounds. Non-numeric leaves (e.g. reps "AMRAP") are left as-is.
    """
    exercises = data.get("exercises")
    if isinstance(exercises, list):
        for ex in exercises:
            if not isinstance(ex, dict):
                continue
            sets = _to_number(ex.get("sets"))
            if sets is not None:
                ex["sets"] = min(WORKOUT_SETS_MAX, max(1, int(round(sets * ratio))))
            reps = _to_number(ex.get("reps"))
            if reps is not None:
                ex["reps"] = min(WORKOUT_REPS_MAX, max(1, int(round(reps * ratio))))
            rest = _to_number(ex.get("rest_seconds"))
            if rest is not None:
                ex["rest_seconds"] = max(0, int(round(rest * ratio)))
    return data


def scale_template(template, target_value: float) -> Dict[str, Any]:
    """
    Rescale a template's content so that its per-unit value hits target_value.
    Always returns a deep copy; the template itself is never mutated.
    """
    data = copy.deepcopy(template.data or {})
    per_unit = template.per_unit_value
    if per_unit <= 0:
        return data

    ratio = float(target_value) / per_unit
    if template.kind == WORKOUT:
        return scale_workout_data(data, ratio)
    return scale_meal_data(data, ratio)


def meal_totals(data: Dict[str, Any]) -> Dict[str, float]:
    ingredients = data.get("ingredients") if isinstance(data, dict) else None
    total_cal = total_p = total_c = total_f = 0.0
    for ing in ingredients or []:
        if not isinstance(ing, dict):
            continue
        total_cal += _num_or_zero(ing.get("calories"))
        total_p += _num_or_zero(ing.get("protein_g"))
        total_c += _num_or_zero(ing.get("carbs_g"))
        total_f += _num_or_zero(ing.get("fats_g"))
    return {
        "calories": int(round(total_cal)),
        "protein": round(total_p, 1),
        "carbs": round(total_c, 1),
        "fats": round(total_f, 1),
    }


def workout_totals(data: Dict[str, Any]) -> Dict[str, int]:
    exercises = data.get("exercises") if isinstance(data, dict) else None
    total_sets = total_reps = total_rest = 0
    for ex in exercises or []:
        if not isinstance(ex, dict):
            continue
        sets = _num_or_zero(ex.get("sets"))
        total_sets += int(sets)
        total_reps += int(sets * _num_or_zero(ex.get("reps")))
        total_rest += int(sets * _num_or_zero(ex.get("rest_seconds")))
    return {
        "total_sets": total_sets,
        "total_reps": total_reps,
        "total_rest_seconds": total_rest,
    }


def totals_from_content(kind: str, data: Dict[str, Any]) -> Dict[str, float]:
    """Aggregate totals for scaled or validated content, branching on the item kind."""
    if kind == WORKOUT:
        return workout_totals(data)
    return meal_totals(data)


def slot_target(daily_total: float, proportion: float) -> int:
    return int(round(daily_total * proportion))
