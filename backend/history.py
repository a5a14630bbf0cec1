"""
Per-user logs of study sessions, quiz results and plans.

Each (user, kind) pair is one JSON list in the user_stores table. Writes
replace the whole list, so concurrent writers resolve as last-write-wins.
"""
import copy
import logging
import re
from datetime import date
from typing import List, Optional

from sqlalchemy.orm.attributes import flag_modified

from models import db, UserStore
from quiz_session import new_entry_id, utc_now_iso

logger = logging.getLogger(__name__)

SESSIONS = 'sessions'
QUIZ_RESULTS = 'quiz_results'
PLANS = 'plans'
KINDS = (SESSIONS, QUIZ_RESULTS, PLANS)

SESSION_MODES = ('text', 'url', 'pdf')
MAX_TITLE_CHARS = 80
MAX_PREVIEW_CHARS = 120


class HistoryRepository:

    def __init__(self, session=None):
        self.session = session or db.session

    def _row(self, user_id: int, kind: str) -> Optional[UserStore]:
        if kind not in KINDS:
            raise ValueError(f'Unknown history kind: {kind!r}')
        return UserStore.query.filter_by(user_id=user_id, kind=kind).first()

    def get(self, user_id: int, kind: str) -> List[dict]:
        row = self._row(user_id, kind)
        if row is None:
            return []
        if not isinstance(row.payload, list):
            logger.warning('Ignoring corrupt %s log for user %s', kind, user_id)
            return []
        return copy.deepcopy(row.payload)

    def put(self, user_id: int, kind: str, entries: List[dict]) -> List[dict]:
        row = self._row(user_id, kind)
        if row is None:
            row = UserStore(user_id=user_id, kind=kind)
            self.session.add(row)
        row.payload = list(entries)
        flag_modified(row, 'payload')
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return row.payload

    def append(self, user_id: int, kind: str, entry: dict, max_retained: int = 100) -> List[dict]:
        entries = self.get(user_id, kind)
        entries.append(entry)
        return self.put(user_id, kind, entries[-max_retained:])

    def toggle_plan(self, user_id: int, plan_id: str) -> Optional[dict]:
        plans = self.get(user_id, PLANS)
        toggled = None
        for plan in plans:
            if isinstance(plan, dict) and plan.get('id') == plan_id:
                plan['done'] = not plan.get('done')
                toggled = plan
        if toggled is None:
            return None
        self.put(user_id, PLANS, plans)
        return toggled


def new_study_session(mode: str, title: str, summary: str) -> dict:
    return {
        'id': new_entry_id(),
        'createdAt': utc_now_iso(),
        'mode': mode if mode in SESSION_MODES else 'text',
        'title': (title or '')[:MAX_TITLE_CHARS],
        'summaryPreview': re.sub(r'\s+', ' ', summary or '')[:MAX_PREVIEW_CHARS],
    }


def new_study_plan(title: str, plan_date: str = None) -> dict:
    return {
        'id': new_entry_id(),
        'title': title.strip(),
        'date': plan_date or date.today().isoformat(),
        'done': False,
    }
