"""
Gamification engine for athlete mental-wellness progress

This package holds the pure computation core:
- Score normalization and the 0-100 wellbeing score
- XP, levels and rank titles
- Check-in and login streaks
- Achievement catalog and evaluation
- Exercise recommendations
- Progress dashboards (statistics, series, weekly averages)
"""

from src.gamification.scoring import compute_wellbeing, invert_stress, normalize
from src.gamification.xp_system import (
    award_xp,
    calculate_checkin_xp,
    calculate_level_from_xp,
    level_for_xp,
    xp_threshold_for_level,
)
from src.gamification.streak_system import compute_streaks, update_login_streak
from src.gamification.achievement_system import (
    AchievementCatalog,
    check_and_award_achievements,
    evaluate_achievements,
    get_achievement_progress,
)
from src.gamification.recommendations import POSITIVE_REINFORCEMENT_MESSAGE, recommend

__all__ = [
    "normalize",
    "invert_stress",
    "compute_wellbeing",
    "award_xp",
    "calculate_checkin_xp",
    "calculate_level_from_xp",
    "level_for_xp",
    "xp_threshold_for_level",
    "compute_streaks",
    "update_login_streak",
    "AchievementCatalog",
    "check_and_award_achievements",
    "evaluate_achievements",
    "get_achievement_progress",
    "POSITIVE_REINFORCEMENT_MESSAGE",
    "recommend",
]
