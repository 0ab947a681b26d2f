"""
XP and Leveling System

Manages XP awards, level calculations, and rank titles.

Leveling Curve:
- Fixed-width bands of 100 XP per level
- level = floor(total_xp / 100) + 1
- threshold(level) = (level - 1) * 100

XP Award Rules (each daily task at most once per user per day):
- Check-in: 10 XP (base) + max(0, mood + stress management + energy + motivation - 20)
- Exercise completed: 30 XP
- Education item viewed: 25 XP
- Resource viewed: 20 XP
- Achievement unlocks: catalog reward
"""

import logging
from typing import Any, Dict, Mapping, Optional

from src.gamification.scoring import extract_raw_metrics, round_half_up
from src.models.progress import DailyTaskType
from src.observability.metrics import record_xp_awarded

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 100
CHECKIN_BASE_XP = 10
# Four core metrics at the neutral 5 each
CHECKIN_BONUS_BASELINE = 20

DAILY_TASK_XP = {
    DailyTaskType.EXERCISE: 30,
    DailyTaskType.EDUCATION: 25,
    DailyTaskType.RESOURCE: 20,
}

# Rank titles per level, three steps per tier
RANKS = [
    {"title": f"{tier.capitalize()} {step}", "tier": tier, "color": color}
    for tier, color in (
        ("bronze", "#cd7f32"),
        ("silver", "#c0c0c0"),
        ("gold", "#ffd700"),
        ("platinum", "#9ad5ff"),
        ("diamond", "#6ae3ff"),
        ("elite", "#ff5fa2"),
        ("champion", "#ff2d55"),
    )
    for step in ("I", "II", "III")
]


def level_for_xp(total_xp: int) -> int:
    """Level (>= 1) for a cumulative XP total; negative XP counts as 0"""
    return max(0, int(total_xp)) // XP_PER_LEVEL + 1


def xp_threshold_for_level(level: int) -> int:
    """Total XP at which a level starts; levels below 1 are treated as 1"""
    return (max(1, int(level)) - 1) * XP_PER_LEVEL


def get_rank_meta(level: int) -> Dict[str, str]:
    """Rank title, tier and color for a level (capped at the top rank)"""
    index = min(max(level, 1), len(RANKS)) - 1
    return RANKS[index]


def calculate_level_from_xp(total_xp: int) -> Dict[str, Any]:
    """
    Calculate level and progress from total XP

    Returns:
        {
            'current_level': int,
            'xp_in_current_level': int,
            'xp_to_next_level': int,
            'xp_for_current_level': int,
            'total_xp_for_next_level': int,
            'band_width': int,
            'progress_percent': float (0-100),
            'rank_title': str,
            'rank_tier': str
        }
    """
    total_xp = max(0, int(total_xp))
    level = level_for_xp(total_xp)
    current_threshold = xp_threshold_for_level(level)
    next_threshold = xp_threshold_for_level(level + 1)
    band_width = next_threshold - current_threshold
    xp_in_level = total_xp - current_threshold
    rank = get_rank_meta(level)

    return {
        "current_level": level,
        "xp_in_current_level": xp_in_level,
        "xp_to_next_level": next_threshold - total_xp,
        "xp_for_current_level": current_threshold,
        "total_xp_for_next_level": next_threshold,
        "band_width": band_width,
        "progress_percent": min(100.0, (xp_in_level / band_width) * 100),
        "rank_title": rank["title"],
        "rank_tier": rank["tier"],
    }


def calculate_checkin_xp(check_in: Optional[Mapping[str, Any]] = None) -> int:
    """
    XP for one check-in.

    10 base XP plus a bonus for every point the four core metrics
    (mood, stress management, energy, motivation) sum above 20.
    Missing metrics count as the neutral 5, so an empty check-in earns
    the base only.
    """
    raw = extract_raw_metrics(check_in or {})
    core_sum = raw["mood"] + raw["stress_management"] + raw["energy"] + raw["motivation"]
    bonus = max(0, round_half_up(core_sum) - CHECKIN_BONUS_BASELINE)
    return CHECKIN_BASE_XP + bonus


def get_xp_for_task(task_type: DailyTaskType, check_in: Optional[Mapping[str, Any]] = None) -> int:
    """
    XP amount for a daily task

    Args:
        task_type: Which daily task was completed
        check_in: Check-in metrics (only used for CHECKIN)

    Returns:
        XP amount to award
    """
    if task_type == DailyTaskType.CHECKIN:
        return calculate_checkin_xp(check_in)
    return DAILY_TASK_XP.get(task_type, 0)


async def award_xp(
    backend,
    user_id: str,
    amount: int,
    source_type: str,
    source_id: str,
    reason: str = "Wellness activity completed"
) -> Dict[str, Any]:
    """
    Award XP to user and check for level up

    The grant is additive and idempotent on (user_id, source_type, source_id):
    repeating the same grant leaves the total unchanged.

    Args:
        backend: ProgressBackend that owns the XP ledger
        user_id: User identifier
        amount: Amount of XP to award
        source_type: Type of activity (checkin, exercise, education, resource, achievement)
        source_id: Idempotency key of the source event
        reason: Human-readable description

    Returns:
        {
            'xp_awarded': int,          # 0 when the grant was a repeat
            'new_total_xp': int,
            'old_total_xp': int,
            'leveled_up': bool,
            'new_level': int,
            'old_level': int,
            'xp_to_next_level': int,
            'rank_title': str
        }
    """
    old_total_xp = await backend.get_total_xp(user_id)
    old_level = level_for_xp(old_total_xp)

    granted = False
    if amount > 0:
        granted = await backend.grant_xp(user_id, amount, source_type, source_id, reason)

    new_total_xp = await backend.get_total_xp(user_id)
    level_info = calculate_level_from_xp(new_total_xp)
    new_level = level_info["current_level"]
    leveled_up = new_level > old_level

    if granted:
        record_xp_awarded(source_type, amount)
        logger.info(
            f"Awarded {amount} XP to user {user_id} for {source_type}. "
            f"Total: {new_total_xp} XP, Level: {new_level} ({level_info['rank_title']})"
        )
    else:
        logger.debug(f"XP grant {source_type}/{source_id} for user {user_id} already applied")

    if leveled_up:
        logger.info(f"User {user_id} leveled up from {old_level} to {new_level}!")

    return {
        "xp_awarded": amount if granted else 0,
        "new_total_xp": new_total_xp,
        "old_total_xp": old_total_xp,
        "leveled_up": leveled_up,
        "new_level": new_level,
        "old_level": old_level,
        "xp_to_next_level": level_info["xp_to_next_level"],
        "rank_title": level_info["rank_title"],
    }
