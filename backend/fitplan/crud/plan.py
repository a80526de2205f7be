from datetime import date, datetime
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from fitplan.models.personalized_item import PersonalizedItem
from fitplan.models.schedule_slot import ScheduleSlot

"""
Plan CRUD
---------
Pure Database Access Object for PersonalizedItems and ScheduleSlots.
Functions here never commit unless stated; callers own the transaction so
delete + insert can be committed as one unit.
"""


def delete_plan_range(db: Session, user_id: int, kind: str, start: date, end: date) -> int:
    """
    Delete the user's `kind` slots dated start..end (inclusive). An item left
    with no slots goes with them. An item still bound to slots outside the
    range is kept and re-anchored to its earliest remaining slot, with the
    freed servings counted back into remaining_servings.
    Returns the number of items removed.
    """
    in_range = db.query(ScheduleSlot).filter(
        ScheduleSlot.user_id == user_id,
        ScheduleSlot.kind == kind,
        ScheduleSlot.date >= start,
        ScheduleSlot.date <= end,
    )
    touched_ids = {row[0] for row in in_range.with_entities(ScheduleSlot.item_id).all() if row[0] is not None}
    touched_ids.update(
        row[0] for row in db.query(PersonalizedItem.id).filter(
            PersonalizedItem.user_id == user_id,
            PersonalizedItem.kind == kind,
            PersonalizedItem.date_assigned >= start,
            PersonalizedItem.date_assigned <= end,
        ).all()
    )
    in_range.delete(synchronize_session="fetch")
    if not touched_ids:
        return 0

    surviving: Dict[int, List[date]] = {}
    for item_id, slot_date in db.query(ScheduleSlot.item_id, ScheduleSlot.date).filter(
        ScheduleSlot.item_id.in_(list(touched_ids))
    ).order_by(ScheduleSlot.date).all():
        surviving.setdefault(item_id, []).append(slot_date)

    orphan_ids = [item_id for item_id in touched_ids if item_id not in surviving]
    if orphan_ids:
        db.query(PersonalizedItem).filter(PersonalizedItem.id.in_(orphan_ids)).delete(synchronize_session="fetch")

    for item in db.query(PersonalizedItem).filter(PersonalizedItem.id.in_(list(surviving))).all():
        dates = surviving[item.id]
        item.date_assigned = dates[0]
        item.remaining_servings = max(0, (item.total_servings or 1) - len(dates))

    return len(orphan_ids)


def get_slots_for_date(db: Session, user_id: int, day: date, kind: Optional[str] = None) -> List[ScheduleSlot]:
    query = db.query(ScheduleSlot).filter(ScheduleSlot.user_id == user_id, ScheduleSlot.date == day)
    if kind:
        query = query.filter(ScheduleSlot.kind == kind)
    return query.order_by(ScheduleSlot.id).all()


def get_slot(db: Session, user_id: int, slot_id: int) -> Optional[ScheduleSlot]:
    return db.query(ScheduleSlot).filter(ScheduleSlot.id == slot_id, ScheduleSlot.user_id == user_id).first()


def mark_slot_complete(db: Session, slot: ScheduleSlot) -> ScheduleSlot:
    """
    Mark one scheduled serving as done. The underlying item is complete once
    every slot bound to it is. Commits.
    """
    slot.is_completed = True
    item = slot.item
    if item is not None and all(s.is_completed for s in item.slots):
        item.is_completed = True
        item.completed_at = datetime.utcnow()

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(slot)
    return slot
