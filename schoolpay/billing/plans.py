from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

UNLIMITED = -1


@dataclass(frozen=True)
class Plan:
    plan_type: str
    name: str
    price: Decimal
    duration_days: int
    max_students: int
    max_teachers: int
    max_classes: int
    features: Dict[str, bool] = field(default_factory=dict)

    def feature_flags(self) -> dict:
        flags = {
            "max_students": self.max_students,
            "max_teachers": self.max_teachers,
            "max_classes": self.max_classes,
        }
        flags.update(self.features)
        return flags


PLANS = {
    "basic": Plan(
        "basic", "Basic", Decimal("25000.00"), 30,
        max_students=500, max_teachers=25, max_classes=50,
        features={"basic_reporting": True, "parent_portal": False, "api_access": False},
    ),
    "pro": Plan(
        "pro", "Pro", Decimal("45000.00"), 30,
        max_students=2000, max_teachers=100, max_classes=200,
        features={"advanced_analytics": True, "parent_portal": True, "api_access": False},
    ),
    "enterprise": Plan(
        "enterprise", "Enterprise", Decimal("75000.00"), 30,
        max_students=UNLIMITED, max_teachers=UNLIMITED, max_classes=UNLIMITED,
        features={"advanced_analytics": True, "parent_portal": True, "api_access": True},
    ),
}

TRIAL_PLAN_NAME = "Basic"
TRIAL_FEATURES = {
    "max_students": 100,
    "admin_dashboard": True,
    "teacher_dashboard": True,
    "parent_portal": False,
    "student_portal": False,
}


def get_plan(plan_type: Optional[str]) -> Optional[Plan]:
    if not plan_type:
        return None
    return PLANS.get(plan_type.lower())


def plan_display_name(plan_type: Optional[str]) -> str:
    plan = get_plan(plan_type)
    if plan:
        return plan.name
    return (plan_type or "Custom").title()
