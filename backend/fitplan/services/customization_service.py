import json
import logging
from typing import Any, Dict, List

from fitplan.exceptions import CollaboratorFailure
from fitplan.models.template import WORKOUT
from fitplan.services import llm_service
from fitplan.utils.llm_prompts.personalization_prompts import (
    MEAL_PERSONALIZATION_SYSTEM_PROMPT,
    WORKOUT_PERSONALIZATION_SYSTEM_PROMPT,
    PERSONALIZATION_USER_PROMPT,
)
from fitplan.utils.validation import (
    MEAL_CALORIES_MIN, MEAL_CALORIES_MAX, WORKOUT_SETS_MIN, WORKOUT_SETS_MAX, WORKOUT_REPS_MAX,
)

logger = logging.getLogger(__name__)

"""
Customization Client
--------------------
The generative collaborator. Input is one entry per selected template
({template_id, slot, content, metadata}); output is the raw, untrusted list the
model returned. Nothing here validates content: that is the orchestrator's job.
"""


class CustomizationClient:
    def __init__(self, temperature: float = 0.1):
        self.temperature = temperature

    def _system_prompt(self, kind: str, context: Dict[str, Any]) -> str:
        if kind == WORKOUT:
            return WORKOUT_PERSONALIZATION_SYSTEM_PROMPT.format(
                experience_level=context.get("experience_level") or "beginner",
                fitness_goal=(context.get("fitness_goal") or "general_health").replace("_", " "),
                duration_minutes=context.get("duration_minutes") or 45,
                sets_min=WORKOUT_SETS_MIN,
                sets_max=WORKOUT_SETS_MAX,
                reps_max=WORKOUT_REPS_MAX,
            )

        avoidance_lines = []
        if context.get("allergies"):
            avoidance_lines.append(f"- ALLERGIES (REMOVE these ingredients): {', '.join(context['allergies'])}")
        if context.get("disliked_foods"):
            avoidance_lines.append(f"- Disliked foods (substitute): {', '.join(context['disliked_foods'])}")
        if context.get("prefer_simple_meals"):
            avoidance_lines.append(f"- Keep cooking under {context.get('max_cooking_time_minutes') or 15} minutes")
        if context.get("prefer_cheap_proteins"):
            avoidance_lines.append("- Prefer budget-friendly protein sources")

        return MEAL_PERSONALIZATION_SYSTEM_PROMPT.format(
            daily_calories=context.get("daily_calories"),
            dietary_preference=context.get("dietary_preference") or "none",
            avoidance_block="\n".join(avoidance_lines) + ("\n" if avoidance_lines else ""),
            calories_min=MEAL_CALORIES_MIN,
            calories_max=MEAL_CALORIES_MAX,
        )

    def customize(self, kind: str, items: List[Dict[str, Any]], context: Dict[str, Any]) -> List[Any]:
        """Raises CollaboratorFailure if the call fails or the reply is not a list."""
        user_prompt = PERSONALIZATION_USER_PROMPT.format(
            kind=kind,
            payload=json.dumps(items, indent=2, default=str),
        )
        result = llm_service.call_llm_json(
            system_prompt=self._system_prompt(kind, context),
            user_prompt=user_prompt,
            temperature=self.temperature,
        )

        # Some providers wrap the array: {"meals": [...]}
        if isinstance(result, dict):
            lists = [v for v in result.values() if isinstance(v, list)]
            if len(lists) == 1:
                result = lists[0]

        if not isinstance(result, list):
            logger.error(f"[Customization] Expected a JSON array, got {type(result).__name__}")
            raise CollaboratorFailure("AI returned a non-array response.")

        logger.info(f"[Customization] Received {len(result)} {kind} candidates for {len(items)} templates")
        return result
