"""
Learning: exercise selection/rotation and the mastery & unlock graph.
"""

from practice_engine.learning.exercise_selector import (
    ExerciseSelector,
    SelectionResult,
    order_for_variety,
)
from practice_engine.learning.mastery_tracker import MasteryTracker, SkillStatus

__all__ = [
    "ExerciseSelector",
    "MasteryTracker",
    "SelectionResult",
    "SkillStatus",
    "order_for_variety",
]
