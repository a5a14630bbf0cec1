"""
Coerce parsed model JSON into the response shapes the UI relies on.

Every field is defaulted instead of left missing, invalid array entries are
dropped one by one, and unparseable input degrades to a minimal object.
The quiz kind is the exception: without at least one usable question
there is nothing to play, so it raises QuizGenerationFailed.
"""
import math
from typing import List, Optional

from errors import QuizGenerationFailed

STUDY_PACK = 'studypack'
QUIZ = 'quiz'
EXAM = 'exam'

MAX_OPTIONS = 4
MAX_SAMPLE_QUESTIONS = 4
EXAM_CAUTION = 'Predictions could not be fully structured. Treat this as rough guidance only.'
DEFAULT_CAUTION = (
    'These predictions are not a guarantee. Cover the full syllabus and use '
    'them only to prioritise your revision.'
)


def _string(value) -> str:
    return value if isinstance(value, str) else ''


def _list(value) -> list:
    return value if isinstance(value, list) else []


def _text(value) -> Optional[str]:
    """Scalar to stripped text; None for containers, booleans and null."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _strings(value) -> List[str]:
    out = []
    for item in _list(value):
        text = _text(item)
        if text:
            out.append(text)
    return out


def normalize_mcq(item) -> Optional[dict]:
    """Return a valid MCQ dict, or None when the entry must be dropped."""
    if not isinstance(item, dict):
        return None

    question = _string(item.get('question')).strip()
    options = list(dict.fromkeys(_strings(item.get('options'))))

    answer = item.get('answer')
    # Some models answer with the option index instead of its text
    if isinstance(answer, int) and not isinstance(answer, bool) and 0 <= answer < len(options):
        answer = options[answer]
    answer = _string(answer).strip()

    if not question or len(options) < 2 or not answer:
        return None

    if answer not in options[:MAX_OPTIONS]:
        options = [o for o in options if o != answer][:MAX_OPTIONS - 1] + [answer]
    options = options[:MAX_OPTIONS]

    return {
        'question': question,
        'options': options,
        'answer': answer,
        'explanation': _string(item.get('explanation')),
    }


def _mcqs(value) -> List[dict]:
    return [mcq for mcq in map(normalize_mcq, _list(value)) if mcq]


def _slide(item) -> Optional[dict]:
    if not isinstance(item, dict):
        return None
    title = _string(item.get('title')).strip()
    bullets = _strings(item.get('bullets'))
    if not title and not bullets:
        return None
    return {'title': title, 'bullets': bullets}


def _flashcard(item) -> Optional[dict]:
    if not isinstance(item, dict):
        return None
    front = _string(item.get('front')).strip()
    back = _string(item.get('back')).strip()
    if not front or not back:
        return None
    return {'front': front, 'back': back}


def _probability(value) -> float:
    if isinstance(value, bool):
        return 0.0
    if not isinstance(value, (int, float)):
        return 0.0
    try:
        value = float(value)
    except OverflowError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def _topic(item) -> Optional[dict]:
    if not isinstance(item, dict):
        return None
    topic = _string(item.get('topic')).strip()
    if not topic:
        return None
    return {
        'topic': topic,
        'reason': _string(item.get('reason')),
        'probability': _probability(item.get('probability')),
        'sampleQuestions': _strings(item.get('sampleQuestions'))[:MAX_SAMPLE_QUESTIONS],
    }


def normalize_study_pack(parsed, raw: str) -> dict:
    if not isinstance(parsed, dict):
        return {
            'summary': raw or '',
            'keywords': [],
            'mcqs': [],
            'pptOutline': [],
            'mindmap': '',
            'flashcards': [],
        }

    summary = parsed.get('summary')
    return {
        'summary': summary if isinstance(summary, str) else (raw or ''),
        'keywords': _strings(parsed.get('keywords')),
        'mcqs': _mcqs(parsed.get('mcqs')),
        'pptOutline': [s for s in map(_slide, _list(parsed.get('pptOutline'))) if s],
        'mindmap': _string(parsed.get('mindmap')),
        'flashcards': [c for c in map(_flashcard, _list(parsed.get('flashcards'))) if c],
    }


def normalize_quiz(parsed, raw: str = '') -> List[dict]:
    if isinstance(parsed, dict):
        items = parsed.get('questions')
    else:
        items = parsed
    questions = _mcqs(items)
    if not questions:
        raise QuizGenerationFailed()
    return questions


def normalize_exam(parsed, raw: str) -> dict:
    if not isinstance(parsed, dict):
        return {
            'overview': raw or '',
            'strategy': '',
            'topics': [],
            'meta': {'caution': EXAM_CAUTION},
        }

    meta = parsed.get('meta')
    caution = _string(meta.get('caution')).strip() if isinstance(meta, dict) else ''
    return {
        'overview': _string(parsed.get('overview')),
        'strategy': _string(parsed.get('strategy')),
        'topics': [t for t in map(_topic, _list(parsed.get('topics'))) if t],
        'meta': {'caution': caution or DEFAULT_CAUTION},
    }


_NORMALIZERS = {
    STUDY_PACK: normalize_study_pack,
    QUIZ: normalize_quiz,
    EXAM: normalize_exam,
}


def normalize(parsed, raw_fallback: str, kind: str):
    try:
        normalizer = _NORMALIZERS[kind]
    except KeyError:
        raise ValueError(f'Unknown response kind: {kind!r}')
    return normalizer(parsed, raw_fallback)
