# Import all models here
from fitplan.models.user import User
from fitplan.models.user_profile import UserProfile
from fitplan.models.template import Template
from fitplan.models.personalized_item import PersonalizedItem
from fitplan.models.schedule_slot import ScheduleSlot
from fitplan.models.user_insights import UserInsights
from fitplan.models.constraint_set import ConstraintSet
from fitplan.models.deviation_event import DeviationEvent
from fitplan.models.adjustment_record import AdjustmentRecord
from fitplan.models.weekly_checkin import WeeklyCheckin
