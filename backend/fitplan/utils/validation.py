from typing import Any, Dict, Iterable, List
from pydantic import BaseModel

from fitplan.models.template import WORKOUT
from fitplan.utils.scaling import meal_totals

"""
Personalization Validation
--------------------------
Checks AI-customized items before they are persisted. Never raises: every
problem is collected so callers can log full diagnostics, while the only
behavioral decision is binary (valid -> persist, invalid -> scaled fallback).
"""

MEAL_CALORIES_MIN = 100
MEAL_CALORIES_MAX = 2000
WORKOUT_SETS_MIN = 1
WORKOUT_SETS_MAX = 20
WORKOUT_REPS_MIN = 1
WORKOUT_REPS_MAX = 100


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = []
    # Subset of errors caused by allergy/dislike matches
    safety_errors: List[str] = []


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _profile_list(profile: Any, key: str) -> List[str]:
    if profile is None:
        return []
    if isinstance(profile, dict):
        values = profile.get(key)
    else:
        values = getattr(profile, key, None)
    return [str(v) for v in (values or []) if v]


def matches_avoided(text: str, term: str) -> bool:
    """Case-insensitive substring match in either direction."""
    a = (text or "").strip().lower()
    b = (term or "").strip().lower()
    if not a or not b:
        return False
    return b in a or a in b


def avoided_terms(profile: Any) -> List[str]:
    """Union of allergies and disliked foods, lowercased, order preserved."""
    seen = []
    for term in _profile_list(profile, "allergies") + _profile_list(profile, "disliked_foods"):
        t = term.lower()
        if t not in seen:
            seen.append(t)
    return seen


def find_safety_violations(ingredient_names: Iterable[str], profile: Any) -> List[str]:
    terms = avoided_terms(profile)
    violations = []
    if not terms:
        return violations
    for name in ingredient_names:
        for term in terms:
            if matches_avoided(name, term):
                violations.append(f"Ingredient may contain allergen/avoided food: {name}")
                break
    return violations


def _meal_total_calories(candidate: Dict[str, Any], data: Dict[str, Any]) -> Any:
    total = candidate.get("total_calories")
    if total is not None:
        return total
    return meal_totals(data)["calories"]


def validate_meal(candidate: Any, profile: Any) -> ValidationResult:
    if not isinstance(candidate, dict):
        return ValidationResult(valid=False, errors=["Meal must be an object"])

    errors: List[str] = []
    safety_errors: List[str] = []
    data = candidate.get("personalized_data")

    if not isinstance(data, dict):
        errors.append("personalized_data is required and must be an object")
        data = {}
    else:
        if not isinstance(data.get("meal_name"), str):
            errors.append("personalized_data.meal_name must be a string")
        ingredients = data.get("ingredients")
        if not isinstance(ingredients, list):
            errors.append("personalized_data.ingredients must be an array")
        elif not ingredients:
            errors.append("personalized_data.ingredients must not be empty")
        else:
            names = []
            for i, ing in enumerate(ingredients):
                if not isinstance(ing, dict):
                    errors.append(f"ingredients[{i}] must be an object")
                    continue
                name = ing.get("ingredient_name")
                if not isinstance(name, str) or not name.strip():
                    errors.append(f"ingredients[{i}].ingredient_name required")
                else:
                    names.append(name)
                grams = ing.get("grams")
                if not _is_number(grams) or grams <= 0:
                    errors.append(f"ingredients[{i}].grams must be a positive number")
                for field in ("calories", "protein_g", "carbs_g", "fats_g"):
                    value = ing.get(field, 0)
                    if not _is_number(value) or value < 0:
                        errors.append(f"ingredients[{i}].{field} must be non-negative")

            safety_errors = find_safety_violations(names, profile)

    total_cal = _meal_total_calories(candidate, data)
    if not _is_number(total_cal) or total_cal < MEAL_CALORIES_MIN or total_cal > MEAL_CALORIES_MAX:
        errors.append(f"total_calories must be between {MEAL_CALORIES_MIN} and {MEAL_CALORIES_MAX}")

    errors.extend(safety_errors)
    return ValidationResult(valid=not errors, errors=errors, safety_errors=safety_errors)


def validate_workout(candidate: Any) -> ValidationResult:
    if not isinstance(candidate, dict):
        return ValidationResult(valid=False, errors=["Workout must be an object"])

    errors: List[str] = []
    data = candidate.get("personalized_data")

    if not isinstance(data, dict):
        errors.append("personalized_data is required and must be an object")
    else:
        if not isinstance(data.get("workout_name"), str):
            errors.append("personalized_data.workout_name must be a string")
        exercises = data.get("exercises")
        if not isinstance(exercises, list):
            errors.append("personalized_data.exercises must be an array")
        elif not exercises:
            errors.append("personalized_data.exercises must not be empty")
        else:
            for i, ex in enumerate(exercises):
                if not isinstance(ex, dict):
                    errors.append(f"exercises[{i}] must be an object")
                    continue
                name = ex.get("exercise_name")
                if not isinstance(name, str) or not name.strip():
                    errors.append(f"exercises[{i}].exercise_name required")
                sets = ex.get("sets")
                if not _is_number(sets) or sets < WORKOUT_SETS_MIN or sets > WORKOUT_SETS_MAX:
                    errors.append(f"exercises[{i}].sets must be between {WORKOUT_SETS_MIN} and {WORKOUT_SETS_MAX}")
                reps = ex.get("reps")
                if not _is_number(reps) or reps < WORKOUT_REPS_MIN or reps > WORKOUT_REPS_MAX:
                    errors.append(f"exercises[{i}].reps must be between {WORKOUT_REPS_MIN} and {WORKOUT_REPS_MAX}")
                rest = ex.get("rest_seconds", 0)
                if not _is_number(rest) or rest < 0:
                    errors.append(f"exercises[{i}].rest_seconds must be non-negative")

    return ValidationResult(valid=not errors, errors=errors)


def validate_personalization(kind: str, candidate: Any, profile: Any = None) -> ValidationResult:
    """Dispatch on the item kind. Only meals carry the allergen/dislike check."""
    if kind == WORKOUT:
        return validate_workout(candidate)
    return validate_meal(candidate, profile)
