import logging
from typing import Any, Dict, List, Optional, Sequence, Set

from fitplan.config import SELECTOR_TOP_N
from fitplan.utils.validation import matches_avoided

logger = logging.getLogger(__name__)

"""
Template Selector
-----------------
Deterministic pick of one template from a candidate pool:
1. Drop templates already used in this plan (reset if that empties the pool).
2. Drop templates whose name/tags hit an avoided food (skipped if that empties the pool).
3. Rank by affinity + favorite-cuisine bonus, ties broken by id.
4. Pick from the top N by hashing the seed, so the same (date, slot) seed
   always regenerates the same template.
"""

CUISINE_BONUS = 0.3


def hash_seed(seed: str) -> int:
    """32-bit polynomial rolling hash (h * 31 + c). Stable across processes, unlike hash()."""
    h = 0
    for ch in seed or "":
        h = (h << 5) - h + ord(ch)
        h = ((h + 2 ** 31) % 2 ** 32) - 2 ** 31
    return abs(h)


def _signal(signals: Any, key: str, default):
    if signals is None:
        return default
    if isinstance(signals, dict):
        value = signals.get(key)
    else:
        value = getattr(signals, key, None)
    return value if value else default


def _tags(template) -> List[str]:
    return [str(t).lower() for t in (getattr(template, "tags", None) or [])]


def _is_avoided(template, avoided: Sequence[str]) -> bool:
    name = getattr(template, "name", "") or ""
    tags = _tags(template)
    for food in avoided:
        if matches_avoided(name, str(food)):
            return True
        if any(matches_avoided(tag, str(food)) for tag in tags):
            return True
    return False


def score_template(template, affinity: Dict[str, float], favorite_cuisines: Sequence[str]) -> float:
    score = float(affinity.get(template.id, 0) or 0)
    tags = _tags(template)
    cuisines = [str(c).lower() for c in favorite_cuisines if c]
    if any(c in tag for c in cuisines for tag in tags):
        score += CUISINE_BONUS
    return score


def rank_templates(pool: Sequence, signals: Any) -> List:
    affinity = _signal(signals, "template_affinity", {})
    favorite_cuisines = _signal(signals, "favorite_cuisines", [])

    if not affinity and not favorite_cuisines:
        return sorted(pool, key=lambda t: t.id or "")

    return sorted(
        pool,
        key=lambda t: (-score_template(t, affinity, favorite_cuisines), t.id or ""),
    )


def select_template(
    candidates: Sequence,
    used_ids: Set[str],
    signals: Any,
    seed: str,
    top_n: int = SELECTOR_TOP_N,
) -> Optional[Any]:
    """
    Select one template. `used_ids` is cleared in place when every candidate
    has already been used. Returns None only for an empty candidate list.
    """
    if not candidates:
        return None

    pool = [t for t in candidates if t.id not in used_ids]
    if not pool:
        logger.info(f"[Selector] All {len(candidates)} templates used, resetting rotation")
        used_ids.clear()
        pool = list(candidates)

    avoided = _signal(signals, "avoided_foods", [])
    if avoided:
        filtered = [t for t in pool if not _is_avoided(t, avoided)]
        if filtered:
            pool = filtered
        else:
            logger.info("[Selector] Avoidance filter would empty the pool, ignoring it")

    top = rank_templates(pool, signals)[:max(1, top_n)]
    if not top:
        return None

    return top[hash_seed(seed) % len(top)]
