"""
GamificationService - Progress Business Logic

Applies the computation core to a user's stored records:
read the latest snapshot, recompute, then write XP grants and unlocks.
Writes are idempotent, so nothing here takes locks.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from src.cache.idempotency import DailyTaskLedger, daily_task_key
from src.exceptions import MindsetError, ValidationError
from src.gamification.achievement_system import (
    DEFAULT_CATALOG,
    AchievementCatalog,
    check_and_award_achievements,
    get_achievement_progress,
)
from src.gamification.dashboards import (
    build_wellbeing_series,
    calculate_check_in_stats,
    weekly_averages,
)
from src.gamification.recommendations import POSITIVE_REINFORCEMENT_MESSAGE, recommend
from src.gamification.scoring import compute_wellbeing
from src.gamification.streak_system import (
    compute_streaks,
    get_next_badge_target,
    get_streak_message,
    update_login_streak,
)
from src.gamification.xp_system import award_xp, calculate_level_from_xp, get_xp_for_task
from src.models.achievement import AchievementCounts
from src.models.checkin import CheckInRecord
from src.models.progress import DailyTaskType, LoginStreak, ProgressState, StreakSummary
from src.observability.metrics import record_check_in, record_persistence_failure
from src.resilience.retry import retry_with_backoff
from src.utils.datetime_helpers import today_in_timezone

logger = logging.getLogger(__name__)

ACTIVITY_TASKS = (DailyTaskType.EXERCISE, DailyTaskType.EDUCATION, DailyTaskType.RESOURCE)

ACTIVITY_REASONS = {
    DailyTaskType.EXERCISE: "Completed a mental-skills exercise",
    DailyTaskType.EDUCATION: "Viewed an education item",
    DailyTaskType.RESOURCE: "Viewed a resource",
}


class GamificationService:
    """
    Service for progress and gamification features.

    Responsibilities:
    - Check-in processing (wellbeing, XP, streaks, achievements, recommendations)
    - Activity processing (exercise, education, resource)
    - Progress, achievement and statistics reads
    - Daily login bookkeeping
    """

    def __init__(self, backend, store, catalog: Optional[AchievementCatalog] = None):
        """
        Initialize GamificationService.

        Args:
            backend: ProgressBackend (check-ins, XP ledger, unlocks, activities)
            store: KeyValueStore (daily task claims, login streaks)
            catalog: Achievement catalog (defaults to the built-in catalog)
        """
        self.backend = backend
        self.store = store
        self.catalog = catalog or DEFAULT_CATALOG
        self.daily_tasks = DailyTaskLedger(store)
        logger.debug("GamificationService initialized")

    async def process_check_in(
        self,
        user_id: str,
        record: Union[CheckInRecord, Mapping[str, Any]],
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Process a daily check-in.

        Args:
            user_id: User identifier
            record: CheckInRecord or raw mapping (metrics are lenient)
            today: The user's local calendar date (defaults to configured timezone)

        Returns:
            {
                'user_id': str,
                'date': 'YYYY-MM-DD',
                'wellbeing_score': int,
                'check_in_saved': bool,
                'created': bool,               # False for a same-day resubmission
                'xp_awarded': int,             # check-in plus achievement XP
                'leveled_up': bool,
                'total_xp': int,
                'level': dict,                 # calculate_level_from_xp()
                'current_streak': int,
                'longest_streak': int,
                'total_check_ins': int,
                'achievements_unlocked': list,
                'pending_achievements': list,
                'persistence_errors': list,
                'recommendations': list,
                'message': str
            }

        Raises:
            ValidationError: record has no usable date, or its date is after today
        """
        record = self._parse_check_in(record, user_id)
        if today is None:
            today = today_in_timezone()
        if record.date > today:
            raise ValidationError(
                f"Check-in date {record.date.isoformat()} is after today ({today.isoformat()})",
                field="date",
                value=record.date.isoformat(),
                user_id=user_id,
            )

        result = self._empty_result(user_id)
        result["date"] = record.date.isoformat()

        # Pure results first: they are returned whatever persistence does
        result["wellbeing_score"] = compute_wellbeing(record)
        recommendations = recommend(record)
        result["recommendations"] = [rec.model_dump(mode="json") for rec in recommendations]

        try:
            result["created"] = await retry_with_backoff(self.backend.upsert_check_in, user_id, record)
            result["check_in_saved"] = True
        except MindsetError as e:
            self._record_error(result, "upsert_check_in", e)

        record_check_in(result["wellbeing_score"], result["created"])

        old_total_xp = await self._read_total_xp(user_id, result)

        if result["check_in_saved"]:
            # Check-in XP, once per user per check-in date
            key = daily_task_key(user_id, record.date, DailyTaskType.CHECKIN)
            await self._grant_daily_task_xp(
                result, key, get_xp_for_task(DailyTaskType.CHECKIN, record), "Daily check-in"
            )

            streaks = await self._compute_streaks(user_id, today, result, extra_dates=[record.date])
            self._apply_streaks(result, streaks)

            await self._award_achievements(user_id, streaks.current_streak, result)
        else:
            # Unsaved check-ins earn nothing; resubmitting the check-in retries everything
            self._apply_streaks(result, await self._compute_streaks(user_id, today, result))

        await self._apply_level(user_id, old_total_xp, result)
        result["message"] = self._build_check_in_message(result, bool(recommendations))

        logger.info(
            f"Check-in processed: user={user_id}, date={record.date}, "
            f"wellbeing={result['wellbeing_score']}, xp={result['xp_awarded']}, "
            f"streak={result['current_streak']}, achievements={len(result['achievements_unlocked'])}"
        )
        return result

    async def process_activity(
        self,
        user_id: str,
        activity_type: Union[DailyTaskType, str],
        item_id: str,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Process an exercise completion, education view or resource view.

        Distinct item ids count towards achievements; the daily task XP is
        granted at most once per user per day per activity type.

        Returns:
            Same shape as process_check_in() without the check-in fields,
            plus 'activity_type', 'item_id' and 'new_item'.

        Raises:
            ValidationError: unknown activity type or empty item id
        """
        task_type = self._parse_activity_type(activity_type, user_id)
        if not item_id or not str(item_id).strip():
            raise ValidationError("item_id is required", field="item_id", value=item_id, user_id=user_id)
        if today is None:
            today = today_in_timezone()

        result = self._empty_result(user_id)
        result.update({"activity_type": task_type.value, "item_id": item_id, "new_item": False})

        try:
            result["new_item"] = await retry_with_backoff(
                self.backend.record_activity, user_id, task_type.value, item_id
            )
        except MindsetError as e:
            self._record_error(result, "record_activity", e)

        old_total_xp = await self._read_total_xp(user_id, result)

        key = daily_task_key(user_id, today, task_type)
        await self._grant_daily_task_xp(
            result, key, get_xp_for_task(task_type), ACTIVITY_REASONS[task_type]
        )

        streaks = await self._compute_streaks(user_id, today, result)
        self._apply_streaks(result, streaks)

        await self._award_achievements(user_id, streaks.current_streak, result)

        await self._apply_level(user_id, old_total_xp, result)
        result["message"] = self._build_activity_message(result)

        logger.info(
            f"Activity processed: user={user_id}, type={task_type.value}, item={item_id}, "
            f"xp={result['xp_awarded']}, achievements={len(result['achievements_unlocked'])}"
        )
        return result

    async def get_progress(self, user_id: str, today: Optional[date] = None) -> ProgressState:
        """
        Aggregate progress for a user.

        Raises:
            MindsetError: the backend could not be read
        """
        if today is None:
            today = today_in_timezone()

        total_xp = await self.backend.get_total_xp(user_id)
        check_ins = await self.backend.fetch_check_ins(user_id)
        unlocked = await self.backend.get_unlocked_achievements(user_id)

        level_info = calculate_level_from_xp(total_xp)
        streaks = compute_streaks([record.date for record in check_ins], today)

        return ProgressState(
            user_id=user_id,
            total_xp=total_xp,
            level=level_info["current_level"],
            xp_in_current_level=level_info["xp_in_current_level"],
            xp_to_next_level=level_info["xp_to_next_level"],
            rank_title=level_info["rank_title"],
            rank_tier=level_info["rank_tier"],
            current_streak=streaks.current_streak,
            longest_streak=streaks.longest_streak,
            total_check_ins=streaks.total_check_ins,
            # Catalog order keeps the listing stable
            unlocked_achievements=[a.id for a in self.catalog if a.id in unlocked]
            + sorted(unlocked - {a.id for a in self.catalog}),
        )

    async def get_achievements(self, user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Unlocked and locked achievements with progress for a user.

        Returns:
            get_achievement_progress() output plus 'counts'
        """
        if today is None:
            today = today_in_timezone()

        unlocked = await self.backend.get_unlocked_achievements(user_id)
        check_ins = await self.backend.fetch_check_ins(user_id)
        activity = await self.backend.get_activity_counts(user_id)
        streaks = compute_streaks([record.date for record in check_ins], today)

        counts = self._counts(streaks.current_streak, activity)
        progress = get_achievement_progress(counts, unlocked, self.catalog)
        progress["counts"] = counts.model_dump()
        return progress

    async def get_check_in_stats(
        self,
        user_id: str,
        days: int = 30,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Check-in statistics, daily wellbeing series and weekly averages.

        Returns:
            {
                'stats': calculate_check_in_stats() output,
                'series': build_wellbeing_series() output,
                'weekly': weekly_averages() output (current window only),
                'streak_message': str,
                'next_badge': {'target': int, 'message': str}
            }
        """
        if today is None:
            today = today_in_timezone()
        days = max(1, int(days))

        # Current window plus the previous one for the deltas
        start = today - timedelta(days=2 * days - 1)
        records = await self.backend.fetch_check_ins(user_id, start=start, end=today)
        window_start = today - timedelta(days=days - 1)
        window = [record for record in records if record.date >= window_start]

        all_dates = [record.date for record in await self.backend.fetch_check_ins(user_id)]
        streaks = compute_streaks(all_dates, today)

        return {
            "stats": calculate_check_in_stats(records, days=days, today=today),
            "series": build_wellbeing_series(records, days=days, today=today),
            "weekly": weekly_averages(window),
            "streak_message": get_streak_message(streaks.current_streak),
            "next_badge": get_next_badge_target(streaks.current_streak),
        }

    async def record_daily_login(self, user_id: str, today: Optional[date] = None) -> LoginStreak:
        """Record today's login and return the login streak"""
        return await update_login_streak(self.store, user_id, today)

    # Private helper methods

    def _parse_check_in(self, record, user_id: str) -> CheckInRecord:
        if isinstance(record, CheckInRecord):
            return record
        try:
            return CheckInRecord.model_validate(dict(record or {}))
        except PydanticValidationError as e:
            raise ValidationError(
                "Check-in needs a calendar date (YYYY-MM-DD)",
                field="date",
                value=(record or {}).get("date"),
                user_id=user_id,
                cause=e,
            ) from e

    def _parse_activity_type(self, activity_type, user_id: str) -> DailyTaskType:
        try:
            task_type = DailyTaskType(activity_type)
        except ValueError:
            task_type = None
        if task_type not in ACTIVITY_TASKS:
            raise ValidationError(
                f"activity_type must be one of {[t.value for t in ACTIVITY_TASKS]}",
                field="activity_type",
                value=str(activity_type),
                user_id=user_id,
            )
        return task_type

    def _record_error(self, result: Dict[str, Any], operation: str, error: MindsetError) -> None:
        record_persistence_failure(operation)
        result["persistence_errors"].append({"operation": operation, **error.to_dict()})
        logger.warning(f"Persistence failure during {operation} for user {result['user_id']}: {error.message}")

    async def _read_total_xp(self, user_id: str, result: Dict[str, Any]) -> Optional[int]:
        try:
            return await retry_with_backoff(self.backend.get_total_xp, user_id)
        except MindsetError as e:
            self._record_error(result, "get_total_xp", e)
            return None

    async def _grant_daily_task_xp(self, result: Dict[str, Any], key, amount: int, reason: str) -> None:
        """Claim the daily task and grant its XP; a failed grant releases the claim"""
        if not await self.daily_tasks.claim(key):
            return

        try:
            xp_result = await retry_with_backoff(
                award_xp,
                self.backend,
                key.user_id,
                amount,
                key.task_type.value,
                key.as_source_id(),
                reason=reason,
            )
        except MindsetError as e:
            await self.daily_tasks.release(key)
            self._record_error(result, "grant_xp", e)
            return

        result["xp_awarded"] += xp_result["xp_awarded"]

    async def _compute_streaks(
        self,
        user_id: str,
        today: date,
        result: Dict[str, Any],
        extra_dates: Optional[List[date]] = None
    ) -> StreakSummary:
        dates: List[date] = list(extra_dates or [])
        try:
            check_ins = await retry_with_backoff(self.backend.fetch_check_ins, user_id)
            dates.extend(record.date for record in check_ins)
        except MindsetError as e:
            self._record_error(result, "fetch_check_ins", e)
        return compute_streaks(dates, today)

    def _apply_streaks(self, result: Dict[str, Any], streaks: StreakSummary) -> None:
        result["current_streak"] = streaks.current_streak
        result["longest_streak"] = streaks.longest_streak
        result["total_check_ins"] = streaks.total_check_ins

    def _counts(self, current_streak: int, activity: Mapping[str, Any]) -> AchievementCounts:
        return AchievementCounts(
            checkins_streak=current_streak,
            exercises_completed=activity.get("exercise", 0),
            resources_viewed=activity.get("resource", 0),
            education_viewed=activity.get("education", 0),
        )

    async def _award_achievements(self, user_id: str, current_streak: int, result: Dict[str, Any]) -> None:
        try:
            activity = await retry_with_backoff(self.backend.get_activity_counts, user_id)
            awarded = await check_and_award_achievements(
                self.backend, user_id, self._counts(current_streak, activity), self.catalog
            )
        except MindsetError as e:
            self._record_error(result, "check_achievements", e)
            return

        result["achievements_unlocked"].extend(awarded["unlocked"])
        result["pending_achievements"].extend(awarded["pending"])
        result["persistence_errors"].extend(
            {"operation": "record_unlock", **error} for error in awarded["errors"]
        )
        result["xp_awarded"] += awarded["xp_awarded"]

    async def _apply_level(self, user_id: str, old_total_xp: Optional[int], result: Dict[str, Any]) -> None:
        total_xp = await self._read_total_xp(user_id, result)
        if total_xp is None:
            # Best estimate from what this call granted
            total_xp = (old_total_xp or 0) + result["xp_awarded"]

        level_info = calculate_level_from_xp(total_xp)
        result["total_xp"] = total_xp
        result["level"] = level_info
        if old_total_xp is not None:
            result["leveled_up"] = level_info["current_level"] > calculate_level_from_xp(old_total_xp)["current_level"]

    def _build_check_in_message(self, result: Dict[str, Any], has_recommendations: bool) -> str:
        """Build check-in summary message."""
        message_parts = []

        if result["xp_awarded"] > 0:
            message_parts.append(f"+{result['xp_awarded']} XP")
        if result["leveled_up"]:
            message_parts.append(f"Level {result['level']['current_level']} reached ({result['level']['rank_title']})")

        message_parts.append(get_streak_message(result["current_streak"]))

        for achievement in result["achievements_unlocked"]:
            message_parts.append(f"Achievement unlocked: {achievement['label']} (+{achievement['xp_reward']} XP)")

        if not has_recommendations:
            message_parts.append(POSITIVE_REINFORCEMENT_MESSAGE)

        return "\n".join(message_parts)

    def _build_activity_message(self, result: Dict[str, Any]) -> str:
        """Build simple activity message."""
        message_parts = []

        if result["xp_awarded"] > 0:
            message_parts.append(f"+{result['xp_awarded']} XP")
        if result["leveled_up"]:
            message_parts.append(f"Level {result['level']['current_level']}!")

        for achievement in result["achievements_unlocked"]:
            message_parts.append(f"Achievement unlocked: {achievement['label']} (+{achievement['xp_reward']} XP)")

        return "\n".join(message_parts)

    def _empty_result(self, user_id: str) -> Dict[str, Any]:
        """Result skeleton shared by check-ins and activities."""
        return {
            "user_id": user_id,
            "wellbeing_score": None,
            "check_in_saved": False,
            "created": False,
            "xp_awarded": 0,
            "leveled_up": False,
            "total_xp": 0,
            "level": calculate_level_from_xp(0),
            "current_streak": 0,
            "longest_streak": 0,
            "total_check_ins": 0,
            "achievements_unlocked": [],
            "pending_achievements": [],
            "persistence_errors": [],
            "recommendations": [],
            "message": "",
        }
