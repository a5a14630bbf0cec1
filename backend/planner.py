import math
import re
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

DEFAULT_DAYS = 21
DEFAULT_DAILY_HOURS = 3
MIN_DAILY_HOURS = 1
MAX_DAILY_HOURS = 12

WEIGHTS = (('high', 3), ('medium', 2), ('low', 1))

TIPS = [
    'Stick to your daily hours, even if you cover slightly less than planned.',
    'Use a timer (Pomodoro or 50-10 blocks) so sessions stay focused.',
    'Mark weak topics as you go and give them extra time every few days.',
    "Keep one light revision-only day each week so you don't burn out.",
]


def days_until_exam(exam_date: str, today: date) -> Tuple[Optional[str], Optional[int]]:
    """ISO exam date and whole days left (at least one), when the date parses."""
    if not exam_date:
        return None, None
    try:
        exam = datetime.fromisoformat(exam_date.strip()).date()
    except ValueError:
        return exam_date, None
    return exam.isoformat(), max(1, (exam - today).days)


def parse_subjects(raw: str) -> List[dict]:
    subjects = []
    for line in re.split(r'[,\n]', raw or ''):
        line = line.strip()
        if not line:
            continue
        lower = line.lower()
        weight = next((w for word, w in WEIGHTS if word in lower), 1)
        name = re.sub(r'[-–:].*$', ' ', line).strip() or line
        subjects.append({'name': name, 'weight': weight})
    return subjects


def _hours_for(daily_hours: float, share: float) -> float:
    # nearest half hour, never below thirty minutes
    return max(0.5, math.floor(daily_hours * share * 2 + 0.5) / 2)


def _clamp_hours(value) -> float:
    if isinstance(value, bool):
        return DEFAULT_DAILY_HOURS
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return DEFAULT_DAILY_HOURS
    if not math.isfinite(hours):
        return DEFAULT_DAILY_HOURS
    return min(max(hours, MIN_DAILY_HOURS), MAX_DAILY_HOURS)


def _week_focus(week_index: int, total_days: int) -> str:
    if week_index == 0:
        return 'Warm-up and building foundations'
    if week_index == total_days // 7 - 1:
        return 'Final revisions and mock tests'
    return 'Balanced practice and revision'


def build_study_plan(exam_date: str, subjects_raw: str, daily_hours=None, today: date = None) -> dict:
    today = today or date.today()
    daily_hours = _clamp_hours(daily_hours if daily_hours is not None else DEFAULT_DAILY_HOURS)
    exam_iso, days_left = days_until_exam(exam_date, today)
    total_days = days_left if days_left else DEFAULT_DAYS

    subjects = parse_subjects(subjects_raw) or [{'name': 'General revision', 'weight': 1}]
    total_weight = sum(s['weight'] for s in subjects) or 1

    day_subjects = [
        {
            'name': s['name'],
            'topics': 'Core concepts + 5-10 practice questions',
            'hours': _hours_for(daily_hours, s['weight'] / total_weight),
        }
        for s in subjects
    ]

    weeks = []
    for day_index in range(total_days):
        current = today + timedelta(days=day_index)
        week_index = day_index // 7
        if week_index == len(weeks):
            week_end = current + timedelta(days=6 - day_index % 7)
            weeks.append({
                'weekLabel': f'Week {week_index + 1}',
                'startDate': current.isoformat(),
                'endDate': week_end.isoformat(),
                'focus': _week_focus(week_index, total_days),
                'days': [],
            })
        weeks[week_index]['days'].append({
            'date': current.isoformat(),
            'label': current.strftime('%a'),
            'subjects': [dict(s) for s in day_subjects],
        })

    hours_text = f'{daily_hours:g}'
    overview = (
        f"From {today.isoformat()} until {exam_iso or 'the exam'}, you will study about {hours_text} hour(s) "
        f'per day across {len(subjects)} subject(s). Heavier-weight subjects get a larger share of time '
        'while still leaving room for revision and practice.'
    )
    return {'overview': overview, 'weeks': weeks, 'tips': list(TIPS)}
