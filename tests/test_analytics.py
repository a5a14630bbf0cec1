from datetime import date, timedelta

import analytics

TODAY = date(2026, 3, 14)


def _session(day, mode='text', hour=10):
    return {'id': f'{day}-{hour}', 'createdAt': f'{day.isoformat()}T{hour:02d}:00:00', 'mode': mode}


def _result(score, total, duration=60, topic='t'):
    return {'score': score, 'totalQuestions': total, 'durationSeconds': duration, 'topic': topic}


def _days(*offsets):
    return [_session(TODAY - timedelta(days=o)) for o in offsets]


def test_streak_over_consecutive_days():
    for k in range(6):
        sessions = _days(*range(k + 1))
        stats = analytics.compute(sessions, [], today=TODAY)
        assert stats['currentStreak'] == k + 1
        assert stats['bestStreak'] == k + 1


def test_streak_restarts_after_gap():
    start = TODAY - timedelta(days=6)
    sessions = [_session(start + timedelta(days=i)) for i in range(5)]
    sessions.append(_session(start + timedelta(days=6)))
    stats = analytics.compute(sessions, [], today=start + timedelta(days=6))
    assert stats['currentStreak'] == 1
    assert stats['bestStreak'] == 5


def test_no_session_today_breaks_current_streak():
    stats = analytics.compute(_days(1, 2, 3), [], today=TODAY)
    assert stats['currentStreak'] == 0
    assert stats['bestStreak'] == 3


def test_multiple_sessions_on_one_day_count_once():
    sessions = [_session(TODAY, hour=h) for h in (8, 12, 20)]
    stats = analytics.compute(sessions, [], today=TODAY)
    assert stats['currentStreak'] == 1
    assert stats['bestStreak'] == 1


def test_best_streak_picks_longest_run():
    assert analytics.best_streak(set()) == 0
    days = {TODAY - timedelta(days=o) for o in (0, 1, 5, 6, 7, 8, 20)}
    assert analytics.best_streak(days) == 4


def test_accuracy_percent():
    results = [_result(3, 5), _result(4, 5), _result(0, 0)]
    assert analytics.accuracy_percent(results) == 70
    assert analytics.accuracy_percent([]) == 0
    assert analytics.accuracy_percent([_result(0, 0)]) == 0


def test_accuracy_rounds_half_up():
    assert analytics.accuracy_percent([_result(1, 8)]) == 13
    assert analytics.percent(1, 3) == 33
    assert analytics.percent(2, 3) == 67


def test_daily_activity_has_seven_buckets():
    sessions = [
        _session(TODAY, 'pdf'),
        _session(TODAY, 'text', hour=11),
        _session(TODAY - timedelta(days=6), 'url'),
        _session(TODAY - timedelta(days=7), 'pdf'),
        {'createdAt': 'not a date'},
        'junk',
    ]
    activity = analytics.daily_activity(sessions, TODAY)
    assert len(activity) == 7
    assert activity[0]['date'] == (TODAY - timedelta(days=6)).isoformat()
    assert activity[-1]['date'] == TODAY.isoformat()
    assert activity[-1]['label'] == 'Sat'
    assert (activity[-1]['sessions'], activity[-1]['pdf']) == (2, 1)
    assert (activity[0]['sessions'], activity[0]['pdf']) == (1, 0)
    assert sum(b['sessions'] for b in activity) == 3


def test_quiz_accuracy_series_uses_last_five_graded():
    results = [_result(i, 10) for i in range(1, 8)] + [_result(0, 0)]
    series = analytics.quiz_accuracy_series(results)
    assert series == [
        {'label': 'Q1', 'accuracy': 30},
        {'label': 'Q2', 'accuracy': 40},
        {'label': 'Q3', 'accuracy': 50},
        {'label': 'Q4', 'accuracy': 60},
        {'label': 'Q5', 'accuracy': 70},
    ]


def test_compute_on_empty_logs():
    stats = analytics.compute([], [], today=TODAY)
    assert stats['accuracyPercent'] == 0
    assert stats['currentStreak'] == 0
    assert stats['bestStreak'] == 0
    assert stats['quizAccSeries'] == []
    assert all(b['sessions'] == 0 for b in stats['dailyActivity'])


def test_malformed_entries_are_ignored():
    results = [_result(True, 5), _result('3', 5), _result(float('nan'), 5), None, _result(2, 4)]
    assert analytics.accuracy_percent(results) == 11
    assert analytics.compute([None, {}, {'createdAt': 5}], results, today=TODAY)['bestStreak'] == 0


def test_timezone_aware_timestamps_are_accepted():
    assert analytics.parse_timestamp('2026-03-14T10:00:00Z') is not None
    assert analytics.parse_timestamp('2026-03-14T10:00:00Z').tzinfo is None
    assert analytics.parse_timestamp('yesterday') is None


def test_dashboard_stats():
    sessions = [_session(TODAY - timedelta(days=o)) for o in (5, 4, 3, 2, 1)]
    plans = [{'id': 'a', 'done': True}, {'id': 'b', 'done': False}, {'id': 'c'}]
    stats = analytics.dashboard_stats(sessions, plans)
    assert stats['totalSessions'] == 5
    assert stats['lastSession'] == sessions[-1]['createdAt']
    assert (stats['upcomingPlans'], stats['completedPlans']) == (2, 1)
    assert stats['recentSessions'] == list(reversed(sessions[1:]))


def test_dashboard_stats_empty():
    stats = analytics.dashboard_stats([], [])
    assert stats['totalSessions'] == 0
    assert stats['lastSession'] is None
    assert stats['recentSessions'] == []


def test_leaderboard_orders_by_score_then_speed():
    results = [
        _result(3, 5, 50, 'a'),
        _result(5, 5, 90, 'b'),
        _result(5, 5, 40, 'c'),
        _result(1, 5, 10, 'd'),
    ]
    assert [r['topic'] for r in analytics.leaderboard(results)] == ['c', 'b', 'a', 'd']


def test_leaderboard_keeps_top_ten():
    results = [_result(i, 20) for i in range(15)]
    board = analytics.leaderboard(results)
    assert len(board) == 10
    assert board[0]['score'] == 14
