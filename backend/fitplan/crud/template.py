from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from fitplan.models.template import WORKOUT, Template
from fitplan.schemas.template import MealStructure, WorkoutStructure
from fitplan.utils.scaling import meal_totals

"""
Template CRUD
-------------
Access to the template catalog. The engine only reads it; create_template
is used for seeding.
"""

# Profile fitness goal -> template goal_type
GOAL_TO_TEMPLATE_TYPE = {
    "gain_muscle": "bulk",
    "muscle_gain": "bulk",
    "bulk": "bulk",
    "lose_weight": "cut",
    "weight_loss": "cut",
    "fat_loss": "cut",
    "cut": "cut",
    "improve_fitness": "maintain",
    "maintain": "maintain",
    "maintenance": "maintain",
    "general_health": "maintain",
}


def map_goal_to_template_type(fitness_goal: Optional[str]) -> str:
    return GOAL_TO_TEMPLATE_TYPE.get((fitness_goal or "").lower(), "maintain")


def get_active_templates(db: Session, kind: str, fitness_goal: Optional[str] = None) -> List[Template]:
    """
    Active templates of a kind for the user's goal. Falls back to every active
    template of that kind when nothing is tagged with the goal.
    """
    query = db.query(Template).filter(Template.kind == kind, Template.is_active == True)
    if fitness_goal:
        goal_type = map_goal_to_template_type(fitness_goal)
        matching = query.filter(Template.goal_type == goal_type).order_by(Template.id).all()
        if matching:
            return matching
    return query.order_by(Template.id).all()


def group_by_meal_type(templates: List[Template]) -> Dict[str, List[Template]]:
    grouped: Dict[str, List[Template]] = {}
    for t in templates:
        grouped.setdefault(t.meal_type or "lunch", []).append(t)
    return grouped


def templates_for_slot(grouped: Dict[str, List[Template]], slot: str) -> List[Template]:
    """Templates tagged for the slot, else lunch templates (the most generic slot)."""
    return grouped.get(slot) or grouped.get("lunch") or []


def create_template(db: Session, template_id: str, kind: str, name: str, data: dict, **fields) -> Template:
    """
    Insert a catalog template after checking its content shape.
    Meal per-serving nutrition defaults to the ingredient totals.
    Raises pydantic.ValidationError (a ValueError) on malformed content.
    """
    if kind == WORKOUT:
        WorkoutStructure.model_validate(data)
    else:
        meal = MealStructure.model_validate(data)
        totals = meal_totals(data)
        fields.setdefault("servings", meal.servings)
        fields.setdefault("per_serving_calories", totals["calories"])
        fields.setdefault("per_serving_protein", totals["protein"])
        fields.setdefault("per_serving_carbs", totals["carbs"])
        fields.setdefault("per_serving_fats", totals["fats"])

    template = Template(id=template_id, kind=kind, name=name, data=data, **fields)
    db.add(template)
    db.commit()
    db.refresh(template)
    return template
