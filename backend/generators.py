"""
Prompt templates around the completion API for each AI feature.

Each generator sends one chat completion, recovers the JSON payload with
extract_json and hands it to the matching normalizer.
"""
import logging
import re
from typing import List

import llm
from errors import ValidationError
from extraction import extract_json
from normalizers import normalize, STUDY_PACK, QUIZ, EXAM

logger = logging.getLogger(__name__)

MOODS = ('sleepy', 'neutral', 'energized')
DIFFICULTIES = ('easy', 'medium', 'hard')

DEFAULT_WORD_LIMIT = 200
MAX_WORD_LIMIT = 400
MIN_QUESTIONS = 3
MAX_QUESTIONS = 15
DEFAULT_QUESTIONS = 5
MAX_CHAT_CONTEXT_CHARS = 7000

LANGUAGES = {
    'hi': 'Hindi',
    'ur': 'Urdu',
    'es': 'Spanish',
    'de': 'German',
    'fr': 'French',
    'it': 'Italian',
    'zh': 'Chinese',
    'ar': 'Arabic',
    'ru': 'Russian',
    'ja': 'Japanese',
}

MOOD_INSTRUCTIONS = {
    'sleepy': (
        'The student is tired. Keep the language gentle and encouraging, keep the '
        'difficulty on the easier side, avoid heavy jargon and add small motivational touches.'
    ),
    'neutral': 'Use a clear, balanced teaching style for an average student with normal energy.',
    'energized': (
        'The student is energized. Go a little deeper, include a few challenging insights '
        'and invite the student to reflect with one or two short prompts.'
    ),
}

QUIZ_TEMPERATURES = {'easy': 0.5, 'medium': 0.7, 'hard': 0.9}

PERSONALITIES = {
    'friendly': (
        'You are a friendly, encouraging AI tutor. Explain concepts with examples and analogies, '
        'break complex topics into small parts and check that the student follows along.'
    ),
    'professional': (
        'You are a professional academic tutor. Give structured explanations with correct '
        'terminology and build a strong foundational understanding.'
    ),
    'simple': (
        'You are a patient tutor who explains everything as simply as possible, using everyday '
        'examples and no jargon.'
    ),
    'detailed': (
        'You are a thorough tutor. Give step-by-step breakdowns, several perspectives and explain '
        'the why behind each concept, not only the what.'
    ),
    'motivational': (
        'You are an inspiring mentor. Teach the topic, add study tips and show how it connects '
        "to the student's goals."
    ),
}

SUBJECTS = {
    'math': 'Show step-by-step solutions and explain why each formula works.',
    'science': 'Tie scientific ideas to everyday observations and practical applications.',
    'history': 'Tell history as a connected story with causes, effects and relevance today.',
    'english': 'Explain grammar and literature with clear correct and incorrect examples.',
    'programming': 'Start with a simple analogy, then show short commented code examples.',
    'general': 'Adapt to any subject, focus on clarity and encourage questions.',
}


def pick(value, allowed, default):
    return value if isinstance(value, str) and value in allowed else default


def word_limit_for(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_WORD_LIMIT
    if 0 < value <= MAX_WORD_LIMIT:
        return int(value)
    return DEFAULT_WORD_LIMIT


def question_count_for(value) -> int:
    try:
        count = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_QUESTIONS
    return min(max(count, MIN_QUESTIONS), MAX_QUESTIONS)


def _language_instruction(target_lang) -> str:
    if not target_lang or target_lang == 'en':
        return ''
    name = LANGUAGES.get(target_lang, target_lang)
    return f' All output must be in {name}.'


def generate_study_pack(source_text: str, word_limit=None, mood=None, target_lang=None) -> dict:
    source_text = (source_text or '').strip()
    if not source_text:
        raise ValidationError('Text is required')

    limit = word_limit_for(word_limit)
    mood = pick(mood, MOODS, 'neutral')

    system_prompt = (
        'You are AI Study Buddy. Reply with STRICT JSON only: no markdown, no backticks, no extra text. '
        + MOOD_INSTRUCTIONS[mood]
        + _language_instruction(target_lang)
        + ' Return a single object with these fields: '
        f'summary (string, a clear explanation for a student, at most {limit} words), '
        'keywords (array of 8-15 short key terms), '
        'mcqs (array of objects with question, options, answer and explanation), '
        'pptOutline (array of objects with title and bullets, bullets being short strings), '
        'mindmap (string, a compact Mermaid diagram in mindmap syntax with one central topic, '
        '3-6 main branches and 2-4 sub-branches each), '
        'and flashcards (array of objects with front, a short prompt, and back, the concise answer).'
    )
    raw = llm.chat([
        {'role': 'system', 'content': system_prompt},
        {'role': 'user', 'content': (
            'Create a study pack (summary, keywords, MCQs, PPT outline, mind map and flashcards) '
            'for this content:\n\n' + source_text
        )},
    ], temperature=0.4)

    return normalize(extract_json(raw), raw, STUDY_PACK)


def generate_quiz(topic: str, difficulty=None, count=None, mood=None) -> List[dict]:
    topic = (topic or '').strip()
    if not topic:
        raise ValidationError('Topic or syllabus is required')

    difficulty = pick(difficulty, DIFFICULTIES, 'medium')
    mood = pick(mood, MOODS, 'neutral')
    count = question_count_for(count if count is not None else DEFAULT_QUESTIONS)

    system_prompt = (
        'You are AI Study Buddy writing multiple-choice quiz questions. Reply with STRICT JSON only, '
        'no markdown and no backticks. Match the tone to the mood of the student: sleepy means simple, '
        'encouraging wording and no trick questions; neutral means a balanced classroom style; energized '
        'allows a few harder multi-step questions. Return an object with a single field "questions", an '
        'array of objects with question (string), options (array of 4 short strings), answer (string, '
        'exactly one of the options) and explanation (string, why the answer is correct).'
    )
    raw = llm.chat([
        {'role': 'system', 'content': system_prompt},
        {'role': 'user', 'content': (
            f"Create {count} multiple-choice questions with overall difficulty '{difficulty}' "
            f"for a student whose mood is '{mood}'. Vary the questions within that level. "
            f'Topic / syllabus: {topic}'
        )},
    ], temperature=QUIZ_TEMPERATURES[difficulty])

    questions = normalize(extract_json(raw), raw, QUIZ)
    return questions[:count]


def generate_exam_prediction(syllabus: str, past_papers: str, exam_name: str = '') -> dict:
    syllabus = (syllabus or '').strip()
    past_papers = (past_papers or '').strip()
    exam_name = (exam_name or '').strip()
    if not syllabus and not past_papers:
        raise ValidationError('Please paste your syllabus and/or past paper questions.')

    system_prompt = (
        'You are AI Study Buddy acting as an exam prediction assistant. You analyse the official '
        'syllabus, past papers and marking patterns. Reply with STRICT JSON only. Return one object '
        'with overview (string, the pattern you see), strategy (string, how to prepare), topics '
        '(array) and meta (object). Every topic has topic (string), reason (string, why it is likely), '
        'probability (number between 0 and 1) and sampleQuestions (1-4 short exam-style questions). '
        'meta has caution (string reminding the student this is not a guarantee and the full syllabus '
        'still matters). Be concrete and conservative with probabilities.'
    )
    user_prompt = (
        (f'Exam name: {exam_name}.' if exam_name else '')
        + '\nSyllabus / official topics:\n' + (syllabus or '(not provided)')
        + '\n\nPast papers and observed patterns:\n' + (past_papers or '(not provided)')
        + '\n\nPredict high-probability topics and question angles with probabilities and sample questions.'
    )
    raw = llm.chat([
        {'role': 'system', 'content': system_prompt},
        {'role': 'user', 'content': user_prompt},
    ], temperature=0.5)

    return normalize(extract_json(raw), raw, EXAM)


def chat_tutor(messages, context=None, personality=None, subject=None,
               practice=False, explain_differently=False) -> str:
    if not isinstance(messages, list) or not messages:
        raise ValidationError('messages array is required')

    history = []
    for m in messages:
        if not isinstance(m, dict):
            continue
        role = m.get('role')
        content = m.get('content')
        if role in ('user', 'assistant') and isinstance(content, str) and content.strip():
            history.append({'role': role, 'content': content})
    if not history:
        raise ValidationError('messages array is required')

    system_prompt = PERSONALITIES[pick(personality, PERSONALITIES, 'friendly')]
    system_prompt += '\n\n' + SUBJECTS[pick(subject, SUBJECTS, 'general')]
    if practice:
        system_prompt += (
            '\n\nThe student wants practice problems. Briefly explain the concept, then give 2-3 '
            'practice questions, each with a hint and a worked solution.'
        )
    if explain_differently:
        system_prompt += (
            '\n\nThe previous explanation did not land. Use a completely different approach: a '
            'real-world analogy, a simple story or a comparison to something familiar.'
        )
    if isinstance(context, str) and context.strip():
        trimmed = re.sub(r'\s+', ' ', context).strip()[:MAX_CHAT_CONTEXT_CHARS]
        system_prompt += "\n\nStudy context from the student's materials (use when relevant):\n" + trimmed

    return llm.chat([{'role': 'system', 'content': system_prompt}] + history, temperature=0.7)
