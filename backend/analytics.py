"""
Statistics derived from a user's session and quiz logs.

All functions are pure: they read the logs and return new values. Dates
are compared at day granularity in local time.
"""
import math
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

ACTIVITY_DAYS = 7
ACCURACY_SERIES_LENGTH = 5
RECENT_SESSIONS = 4
LEADERBOARD_SIZE = 10


def parse_timestamp(value) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _session_dates(sessions: Iterable[dict]) -> set:
    days = set()
    for s in sessions:
        ts = parse_timestamp(s.get('createdAt')) if isinstance(s, dict) else None
        if ts:
            days.add(ts.date())
    return days


def _int(value) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return 0


def percent(part: int, whole: int) -> int:
    """Rounded percentage with halves rounded up."""
    return int(math.floor(part / whole * 100 + 0.5))


def _graded(quiz_results: Iterable[dict]) -> List[dict]:
    return [r for r in quiz_results if isinstance(r, dict) and _int(r.get('totalQuestions')) > 0]


def accuracy_percent(quiz_results) -> int:
    graded = _graded(quiz_results)
    total = sum(_int(r.get('totalQuestions')) for r in graded)
    if not total:
        return 0
    score = sum(_int(r.get('score')) for r in graded)
    return percent(score, total)


def best_streak(days: set) -> int:
    best = 0
    for day in days:
        # only start counting at the first day of a run
        if day - timedelta(days=1) in days:
            continue
        length = 1
        while day + timedelta(days=length) in days:
            length += 1
        best = max(best, length)
    return best


def current_streak(days: set, today: date) -> int:
    streak = 0
    day = today
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def daily_activity(sessions, today: date) -> List[dict]:
    start = today - timedelta(days=ACTIVITY_DAYS - 1)
    buckets = {}
    for offset in range(ACTIVITY_DAYS):
        day = start + timedelta(days=offset)
        buckets[day] = {'date': day.isoformat(), 'label': day.strftime('%a'), 'sessions': 0, 'pdf': 0}

    for s in sessions:
        if not isinstance(s, dict):
            continue
        ts = parse_timestamp(s.get('createdAt'))
        if ts is None or ts.date() not in buckets:
            continue
        bucket = buckets[ts.date()]
        bucket['sessions'] += 1
        if s.get('mode') == 'pdf':
            bucket['pdf'] += 1
    return list(buckets.values())


def quiz_accuracy_series(quiz_results) -> List[dict]:
    recent = _graded(quiz_results)[-ACCURACY_SERIES_LENGTH:]
    return [
        {
            'label': f'Q{i}',
            'accuracy': percent(_int(r.get('score')), _int(r.get('totalQuestions'))),
        }
        for i, r in enumerate(recent, start=1)
    ]


def compute(sessions, quiz_results, today: Optional[date] = None) -> dict:
    today = today or date.today()
    sessions = list(sessions or [])
    quiz_results = list(quiz_results or [])
    days = _session_dates(sessions)
    return {
        'accuracyPercent': accuracy_percent(quiz_results),
        'currentStreak': current_streak(days, today),
        'bestStreak': best_streak(days),
        'dailyActivity': daily_activity(sessions, today),
        'quizAccSeries': quiz_accuracy_series(quiz_results),
    }


def dashboard_stats(sessions, plans) -> dict:
    sessions = [s for s in (sessions or []) if isinstance(s, dict)]
    plans = [p for p in (plans or []) if isinstance(p, dict)]
    return {
        'totalSessions': len(sessions),
        'lastSession': sessions[-1].get('createdAt') if sessions else None,
        'upcomingPlans': sum(1 for p in plans if not p.get('done')),
        'completedPlans': sum(1 for p in plans if p.get('done')),
        'recentSessions': list(reversed(sessions[-RECENT_SESSIONS:])),
    }


def leaderboard(quiz_results) -> List[dict]:
    results = [r for r in (quiz_results or []) if isinstance(r, dict)]
    ranked = sorted(results, key=lambda r: (-_int(r.get('score')), _int(r.get('durationSeconds'))))
    return ranked[:LEADERBOARD_SIZE]
