"""
Exercise Recommendations

Suggests up to three guided exercises from one check-in.

Rules (evaluated in this order):
- Stress management <= 4: 4-7-8 breathing (high)
- Motivation <= 2: power pose & affirmations (high)
- Energy <= 2: energy reset meditation (medium)
- Mood <= 2: gratitude & success visualization (medium)
- Two or more of the four core metrics <= 4: complete mental reset (high)

Results are sorted by priority (stable within a priority) and truncated
to 3. Missing metrics use the neutral default of 5, so an empty check-in
gets no recommendations.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Union

from src.gamification.scoring import extract_raw_metrics
from src.models.checkin import CheckInRecord
from src.models.recommendation import Exercise, Priority, Recommendation

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 3
LOW_SCORE_THRESHOLD = 4
VERY_LOW_SCORE_THRESHOLD = 2

POSITIVE_REINFORCEMENT_MESSAGE = (
    "Your check-in scores look excellent! Keep up the great work "
    "and maintain your positive momentum."
)

EXERCISES: Dict[str, Exercise] = {
    exercise.id: exercise
    for exercise in (
        Exercise(
            id="breathing-1",
            title="4-7-8 Breathing Technique",
            description="A powerful breathing exercise to calm your nervous system and improve stress management.",
            category="breathing",
            duration_minutes=5,
            difficulty="beginner",
            instructions=[
                "Find a comfortable seated position",
                "Inhale through your nose for 4 counts",
                "Hold your breath for 7 counts",
                "Exhale through your mouth for 8 counts",
                "Repeat 4-6 cycles",
            ],
            benefits=["Reduces stress", "Calms nervous system", "Improves focus"],
            tags=["stress-relief", "breathing", "quick", "beginner-friendly"],
        ),
        Exercise(
            id="confidence-1",
            title="Power Pose & Affirmations",
            description="Boost your confidence and motivation with body language and positive self-talk.",
            category="confidence",
            duration_minutes=3,
            difficulty="beginner",
            instructions=[
                "Stand tall with feet shoulder-width apart",
                "Place hands on hips or raise arms in victory pose",
                "Hold for 2 minutes while breathing deeply",
                'Repeat: "I am strong, capable, and ready"',
                "Visualize yourself succeeding",
            ],
            benefits=["Increases confidence", "Boosts motivation", "Improves mood"],
            tags=["confidence", "motivation", "quick", "affirmations"],
        ),
        Exercise(
            id="mindfulness-1",
            title="Energy Reset Meditation",
            description="A quick mindfulness practice to restore mental clarity and energy.",
            category="mindfulness",
            duration_minutes=7,
            difficulty="beginner",
            instructions=[
                "Sit comfortably with eyes closed",
                "Take 3 deep breaths to center yourself",
                "Scan your body for tension and release it",
                "Visualize golden energy flowing through you",
                "Set an intention for renewed energy",
            ],
            benefits=["Restores energy", "Improves focus", "Reduces fatigue"],
            tags=["energy", "mindfulness", "meditation", "restoration"],
        ),
        Exercise(
            id="visualization-1",
            title="Gratitude & Success Visualization",
            description="Lift your spirits with gratitude practice and positive visualization.",
            category="visualization",
            duration_minutes=8,
            difficulty="beginner",
            instructions=[
                "Think of 3 things you're grateful for today",
                "Visualize a recent accomplishment in detail",
                "Imagine yourself achieving a current goal",
                "Feel the emotions of success and joy",
                "Carry this feeling with you",
            ],
            benefits=["Improves mood", "Increases optimism", "Builds resilience"],
            tags=["gratitude", "visualization", "mood-boost", "positivity"],
        ),
        Exercise(
            id="recovery-1",
            title="Complete Mental Reset",
            description="A comprehensive exercise combining breathing, mindfulness, and positive imagery.",
            category="recovery",
            duration_minutes=12,
            difficulty="intermediate",
            instructions=[
                "Begin with 5 minutes of deep breathing",
                "Practice body scan meditation",
                "Visualize your ideal performance state",
                "Set 3 small, achievable goals",
                "End with self-compassion practice",
            ],
            benefits=["Comprehensive reset", "Builds resilience", "Improves overall well-being"],
            tags=["recovery", "comprehensive", "resilience", "well-being"],
        ),
    )
}


class RecommendationRule(NamedTuple):
    exercise_id: str
    priority: Priority
    reason: str
    applies: Callable[[Dict[str, float]], bool]


def _count_low(metrics: Dict[str, float]) -> int:
    core = (metrics["mood"], metrics["stress_management"], metrics["energy"], metrics["motivation"])
    return sum(1 for value in core if value <= LOW_SCORE_THRESHOLD)


RULES: List[RecommendationRule] = [
    RecommendationRule(
        "breathing-1",
        Priority.HIGH,
        "Your stress management could use some support today. This breathing "
        "technique helps activate your parasympathetic nervous system.",
        lambda m: m["stress_management"] <= LOW_SCORE_THRESHOLD,
    ),
    RecommendationRule(
        "confidence-1",
        Priority.HIGH,
        "Your motivation is low today. Power poses can increase testosterone "
        "and reduce cortisol.",
        lambda m: m["motivation"] <= VERY_LOW_SCORE_THRESHOLD,
    ),
    RecommendationRule(
        "mindfulness-1",
        Priority.MEDIUM,
        "Your energy is low today. This meditation helps reset your mental "
        "state and restore vitality.",
        lambda m: m["energy"] <= VERY_LOW_SCORE_THRESHOLD,
    ),
    RecommendationRule(
        "visualization-1",
        Priority.MEDIUM,
        "Your mood could use a boost. Gratitude and visualization activate "
        "positive neural pathways.",
        lambda m: m["mood"] <= VERY_LOW_SCORE_THRESHOLD,
    ),
    RecommendationRule(
        "recovery-1",
        Priority.HIGH,
        "Multiple areas need attention today. This comprehensive exercise "
        "addresses overall mental wellness.",
        lambda m: _count_low(m) >= 2,
    ),
]


def recommend(
    check_in: Union[CheckInRecord, Mapping[str, Any], None] = None,
    limit: int = MAX_RECOMMENDATIONS,
) -> List[Recommendation]:
    """
    Select exercises for a check-in

    Args:
        check_in: CheckInRecord or mapping (mood, stress_management or legacy
                  stress, energy, motivation; both naming conventions accepted)
        limit: Maximum number of recommendations (default 3)

    Returns:
        Recommendations sorted high -> medium -> low, at most `limit`.
        Empty when every score looks fine; callers show
        POSITIVE_REINFORCEMENT_MESSAGE in that case.
    """
    metrics = extract_raw_metrics(check_in)

    fired = [
        Recommendation(exercise=EXERCISES[rule.exercise_id], reason=rule.reason, priority=rule.priority)
        for rule in RULES
        if rule.applies(metrics)
    ]

    # sorted() is stable, so rule order breaks ties
    ranked = sorted(fired, key=lambda rec: rec.priority.rank)[:max(0, limit)]

    logger.debug(f"Recommendations fired: {[rec.exercise.id for rec in ranked]}")
    return ranked


def get_exercise(exercise_id: str) -> Optional[Exercise]:
    """Look up a catalog exercise by id"""
    return EXERCISES.get(exercise_id)
