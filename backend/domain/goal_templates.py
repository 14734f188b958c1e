"""Default amounts and timelines for the goal types the planner offers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class GoalTemplate:
    goal_type: str
    name: str
    default_amount: float
    suggested_timeline: int  # years from now
    description: str


GOAL_TEMPLATES: Dict[str, GoalTemplate] = {
    template.goal_type: template
    for template in (
        GoalTemplate("retirement", "Retirement", 1_000_000, 30,
                     "Plan for a comfortable retirement with strategic withdrawal order"),
        GoalTemplate("travel", "Travel", 15_000, 2,
                     "Save for your dream vacation or travel adventure"),
        GoalTemplate("wedding", "Wedding", 30_000, 1,
                     "Plan and save for your special day"),
        GoalTemplate("home", "Buying a Home", 80_000, 5,
                     "Save for a down payment and closing costs"),
        GoalTemplate("education", "Education", 50_000, 4,
                     "Fund education for yourself or your children"),
        GoalTemplate("celebration", "Celebration", 5_000, 1,
                     "Save for a special celebration or milestone event"),
        GoalTemplate("heirs", "Leave to Heirs", 500_000, 25,
                     "Build wealth to pass on to future generations"),
    )
}


def get_goal_template(goal_type: str) -> Optional[GoalTemplate]:
    return GOAL_TEMPLATES.get((goal_type or "").strip().lower())
