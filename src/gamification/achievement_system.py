"""
Achievement System

Tracks and awards achievements across four counter groups:
- checkins: current daily check-in streak
- exercise: guided exercises completed
- resource: resources viewed
- education: education items viewed

Features:
- Static catalog, validated and bound to counter selectors at load time
- Idempotent evaluation: an achievement fires at most once per user
- Progress tracking for locked achievements
- Persistence of unlocks plus their XP reward, retried on transient failures
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional, Union
import logging

from src.exceptions import MindsetError, PersistenceError
from src.gamification.xp_system import award_xp
from src.models.achievement import Achievement, AchievementCounts, AchievementGroup, UnlockEvent
from src.observability.metrics import record_achievement_unlocked, record_persistence_failure
from src.resilience.retry import retry_with_backoff

logger = logging.getLogger(__name__)

CounterSelector = Callable[[AchievementCounts], int]

# group -> which counter the target is compared against
GROUP_SELECTORS: Dict[AchievementGroup, CounterSelector] = {
    AchievementGroup.CHECKINS: lambda counts: counts.checkins_streak,
    AchievementGroup.EXERCISE: lambda counts: counts.exercises_completed,
    AchievementGroup.RESOURCE: lambda counts: counts.resources_viewed,
    AchievementGroup.EDUCATION: lambda counts: counts.education_viewed,
}

ACHIEVEMENTS: List[Dict[str, Any]] = [
    # Check-in streaks (primary daily task)
    {"id": "checkin-streak-3", "group": "checkins", "target": 3, "xp_reward": 50, "icon": "calendar", "label": "3 Check-ins", "description": "3 consecutive daily check-ins."},
    {"id": "checkin-streak-7", "group": "checkins", "target": 7, "xp_reward": 125, "icon": "calendar-days", "label": "Week Consistent", "description": "7 consecutive daily check-ins."},
    {"id": "checkin-streak-14", "group": "checkins", "target": 14, "xp_reward": 200, "icon": "calendar-range", "label": "Fortnight Strong", "description": "14 consecutive daily check-ins."},
    {"id": "checkin-streak-30", "group": "checkins", "target": 30, "xp_reward": 400, "icon": "flame", "label": "Monthly Dedicated", "description": "30 consecutive daily check-ins."},
    # Exercises completed
    {"id": "ex-1", "group": "exercise", "target": 1, "xp_reward": 15, "icon": "zap", "label": "First Exercise", "description": "Complete 1 exercise."},
    {"id": "ex-5", "group": "exercise", "target": 5, "xp_reward": 50, "icon": "activity", "label": "5 Exercises", "description": "Complete 5 exercises."},
    {"id": "ex-10", "group": "exercise", "target": 10, "xp_reward": 100, "icon": "pulse", "label": "10 Exercises", "description": "Complete 10 exercises."},
    {"id": "ex-20", "group": "exercise", "target": 20, "xp_reward": 200, "icon": "dumbbell", "label": "20 Exercises", "description": "Complete 20 exercises."},
    {"id": "ex-50", "group": "exercise", "target": 50, "xp_reward": 450, "icon": "trophy", "label": "50 Exercises", "description": "Complete 50 exercises."},
    {"id": "ex-100", "group": "exercise", "target": 100, "xp_reward": 900, "icon": "medal", "label": "100 Exercises", "description": "Complete 100 exercises."},
    # Resources viewed
    {"id": "res-1", "group": "resource", "target": 1, "xp_reward": 12, "icon": "book-open", "label": "First Resource", "description": "View 1 resource."},
    {"id": "res-5", "group": "resource", "target": 5, "xp_reward": 40, "icon": "book-marked", "label": "5 Resources", "description": "View 5 resources."},
    {"id": "res-10", "group": "resource", "target": 10, "xp_reward": 80, "icon": "library", "label": "10 Resources", "description": "View 10 resources."},
    {"id": "res-20", "group": "resource", "target": 20, "xp_reward": 160, "icon": "layers", "label": "20 Resources", "description": "View 20 resources."},
    {"id": "res-50", "group": "resource", "target": 50, "xp_reward": 350, "icon": "archive", "label": "50 Resources", "description": "View 50 resources."},
    {"id": "res-100", "group": "resource", "target": 100, "xp_reward": 700, "icon": "vault", "label": "100 Resources", "description": "View 100 resources."},
    # Education pieces
    {"id": "edu-1", "group": "education", "target": 1, "xp_reward": 13, "icon": "brain", "label": "First Lesson", "description": "View 1 education item."},
    {"id": "edu-5", "group": "education", "target": 5, "xp_reward": 45, "icon": "lightbulb", "label": "5 Lessons", "description": "View 5 education items."},
    {"id": "edu-10", "group": "education", "target": 10, "xp_reward": 90, "icon": "graduation-cap", "label": "10 Lessons", "description": "View 10 education items."},
    {"id": "edu-20", "group": "education", "target": 20, "xp_reward": 180, "icon": "scroll", "label": "20 Lessons", "description": "View 20 education items."},
    {"id": "edu-50", "group": "education", "target": 50, "xp_reward": 400, "icon": "books", "label": "50 Lessons", "description": "View 50 education items."},
    {"id": "edu-100", "group": "education", "target": 100, "xp_reward": 800, "icon": "university", "label": "100 Lessons", "description": "View 100 education items."},
]


class CatalogEntry(NamedTuple):
    achievement: Achievement
    selector: CounterSelector


class AchievementCatalog:
    """
    Static achievement catalog with counter selectors resolved up front.

    Definitions are validated when the catalog is built: an unknown group,
    a non-positive target or a duplicate id raises here, so evaluation
    itself never has to branch on the group.
    """

    def __init__(self, definitions: Iterable[Union[Achievement, Mapping[str, Any]]]):
        self._entries: List[CatalogEntry] = []
        seen_ids = set()

        for definition in definitions:
            achievement = (
                definition if isinstance(definition, Achievement)
                else Achievement.model_validate(definition)
            )
            if achievement.id in seen_ids:
                raise ValueError(f"Duplicate achievement id in catalog: {achievement.id}")
            seen_ids.add(achievement.id)
            self._entries.append(CatalogEntry(achievement, GROUP_SELECTORS[achievement.group]))

        logger.debug(f"Loaded achievement catalog with {len(self._entries)} entries")

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return (entry.achievement for entry in self._entries)

    def get(self, achievement_id: str) -> Optional[Achievement]:
        for entry in self._entries:
            if entry.achievement.id == achievement_id:
                return entry.achievement
        return None

    def evaluate(
        self,
        counts: Union[AchievementCounts, Mapping[str, Any], None],
        prior_unlocked: Iterable[str] = (),
    ) -> List[UnlockEvent]:
        """Achievements whose target is reached and that are not yet unlocked"""
        counts = _as_counts(counts)
        unlocked = set(prior_unlocked or ())
        newly_unlocked: List[UnlockEvent] = []

        for achievement, selector in self._entries:
            if achievement.id in unlocked:
                continue
            if selector(counts) >= achievement.target:
                unlocked.add(achievement.id)
                newly_unlocked.append(UnlockEvent(
                    id=achievement.id,
                    label=achievement.label,
                    xp_reward=achievement.xp_reward,
                ))

        return newly_unlocked

    def progress(
        self,
        counts: Union[AchievementCounts, Mapping[str, Any], None],
        prior_unlocked: Iterable[str] = (),
    ) -> List[Dict[str, Any]]:
        """Every entry with its current counter, target and unlocked flag"""
        counts = _as_counts(counts)
        unlocked = set(prior_unlocked or ())
        rows = []

        for achievement, selector in self._entries:
            current = selector(counts)
            rows.append({
                "id": achievement.id,
                "label": achievement.label,
                "description": achievement.description,
                "icon": achievement.icon,
                "group": achievement.group.value,
                "target": achievement.target,
                "xp_reward": achievement.xp_reward,
                "current": current,
                "progress_percent": min(100.0, current / achievement.target * 100),
                "unlocked": achievement.id in unlocked,
            })

        return rows


def _as_counts(counts: Union[AchievementCounts, Mapping[str, Any], None]) -> AchievementCounts:
    if isinstance(counts, AchievementCounts):
        return counts
    if isinstance(counts, Mapping):
        return AchievementCounts.model_validate(dict(counts))
    return AchievementCounts()


DEFAULT_CATALOG = AchievementCatalog(ACHIEVEMENTS)


def evaluate_achievements(
    user_id: str,
    counts: Union[AchievementCounts, Mapping[str, Any], None],
    prior_unlocked: Iterable[str] = (),
    catalog: Optional[AchievementCatalog] = None,
) -> List[UnlockEvent]:
    """
    Determine which achievements are newly unlocked

    Args:
        user_id: User identifier (for logging only)
        counts: Current counters (checkins_streak, exercises_completed,
                resources_viewed, education_viewed); malformed values count as 0
        prior_unlocked: Achievement ids the user already has
        catalog: Catalog to evaluate (defaults to the built-in catalog)

    Returns:
        Unlock events in catalog order. Passing their ids back in
        prior_unlocked makes the next evaluation return nothing for them.
    """
    catalog = catalog or DEFAULT_CATALOG
    events = catalog.evaluate(counts, prior_unlocked)
    if events:
        logger.info(f"User {user_id} reached {len(events)} achievement(s): {[e.id for e in events]}")
    return events


def get_achievement_progress(
    counts: Union[AchievementCounts, Mapping[str, Any], None],
    prior_unlocked: Iterable[str] = (),
    catalog: Optional[AchievementCatalog] = None,
) -> Dict[str, Any]:
    """
    Get achievements split into unlocked and locked with progress

    Returns:
        {
            'unlocked': [...],
            'locked': [...],             # with current/target/progress_percent
            'total_unlocked': int,
            'total_achievements': int,
            'total_xp_from_achievements': int
        }
    """
    catalog = catalog or DEFAULT_CATALOG
    rows = catalog.progress(counts, prior_unlocked)
    unlocked = [row for row in rows if row["unlocked"]]
    locked = [row for row in rows if not row["unlocked"]]

    return {
        "unlocked": unlocked,
        "locked": locked,
        "total_unlocked": len(unlocked),
        "total_achievements": len(rows),
        "total_xp_from_achievements": sum(row["xp_reward"] for row in unlocked),
    }


async def check_and_award_achievements(
    backend,
    user_id: str,
    counts: Union[AchievementCounts, Mapping[str, Any], None],
    catalog: Optional[AchievementCatalog] = None,
) -> Dict[str, Any]:
    """
    Evaluate achievements against the latest unlock state and persist new ones

    The XP reward is granted first (idempotent by achievement id) and the
    unlock is then written with backend.record_unlock (idempotent by id).
    A failed unlock write leaves the achievement eligible, so the next
    evaluation retries it without granting the reward twice.
    Writes that still fail after retries are returned as pending: the
    decision stands and the same call can be repeated later.

    Args:
        backend: ProgressBackend
        user_id: User identifier
        counts: Current counters
        catalog: Catalog to evaluate (defaults to the built-in catalog)

    Returns:
        {
            'unlocked': [UnlockEvent dicts persisted by this call],
            'pending': [UnlockEvent dicts that could not be persisted],
            'errors': [serialized errors for pending entries],
            'xp_awarded': int
        }
    """
    catalog = catalog or DEFAULT_CATALOG
    prior_unlocked = await backend.get_unlocked_achievements(user_id)
    events = evaluate_achievements(user_id, counts, prior_unlocked, catalog)

    result: Dict[str, Any] = {"unlocked": [], "pending": [], "errors": [], "xp_awarded": 0}

    for event in events:
        try:
            xp_result = await retry_with_backoff(
                award_xp,
                backend,
                user_id,
                event.xp_reward,
                "achievement",
                event.id,
                reason=f"Unlocked achievement: {event.label}",
            )
            newly_recorded = await retry_with_backoff(backend.record_unlock, user_id, event.id)
        except MindsetError as e:
            error = e if isinstance(e, PersistenceError) else PersistenceError(
                message=f"Could not persist achievement {event.id}: {e.message}",
                user_id=user_id,
                operation="record_unlock",
                context={"achievement_id": event.id},
                cause=e,
            )
            record_persistence_failure("record_unlock")
            result["pending"].append(event.model_dump())
            result["errors"].append(error.to_dict())
            continue

        if not newly_recorded:
            # Another client recorded it first; do not emit it twice
            logger.info(f"Achievement {event.id} already recorded for user {user_id}")
            continue

        achievement = catalog.get(event.id)
        record_achievement_unlocked(achievement.group.value if achievement else "unknown")
        result["unlocked"].append(event.model_dump())
        result["xp_awarded"] += xp_result["xp_awarded"]

        logger.info(
            f"User {user_id} unlocked achievement: {event.id} "
            f"({event.label}) +{xp_result['xp_awarded']} XP"
        )

    return result
