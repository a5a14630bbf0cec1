import random

import pytest

from errors import QuizGenerationFailed
from extraction import extract_json
from normalizers import (normalize, normalize_mcq, STUDY_PACK, QUIZ, EXAM,
                         EXAM_CAUTION, DEFAULT_CAUTION)


def test_study_pack_end_to_end():
    raw = '```json\n{"summary":"S","keywords":["a","b"],"mcqs":[{"question":"Q1","options":["A","B"],"answer":"A"}]}\n```'
    assert normalize(extract_json(raw), raw, STUDY_PACK) == {
        'summary': 'S',
        'keywords': ['a', 'b'],
        'mcqs': [{'question': 'Q1', 'options': ['A', 'B'], 'answer': 'A', 'explanation': ''}],
        'pptOutline': [],
        'mindmap': '',
        'flashcards': [],
    }


def test_study_pack_degrades_to_raw_text():
    raw = 'Photosynthesis turns light into chemical energy.'
    assert normalize(None, raw, STUDY_PACK) == {
        'summary': raw,
        'keywords': [],
        'mcqs': [],
        'pptOutline': [],
        'mindmap': '',
        'flashcards': [],
    }


def test_study_pack_summary_falls_back_to_raw():
    pack = normalize({'summary': 42, 'keywords': 'nope'}, 'raw text', STUDY_PACK)
    assert pack['summary'] == 'raw text'
    assert pack['keywords'] == []


def test_study_pack_drops_invalid_entries():
    parsed = {
        'summary': 'S',
        'keywords': ['cell', None, {'x': 1}, '  ', 7],
        'pptOutline': [{'title': 'Intro', 'bullets': ['a', 3, None]}, 'junk', {'bullets': []}],
        'mindmap': ['not', 'a', 'string'],
        'flashcards': [{'front': 'Q', 'back': 'A'}, {'front': 'only front'}, None],
    }
    pack = normalize(parsed, '', STUDY_PACK)
    assert pack['keywords'] == ['cell', '7']
    assert pack['pptOutline'] == [{'title': 'Intro', 'bullets': ['a', '3']}]
    assert pack['mindmap'] == ''
    assert pack['flashcards'] == [{'front': 'Q', 'back': 'A'}]


@pytest.mark.parametrize('item', [
    {'options': ['A', 'B'], 'answer': 'A'},
    {'question': 'Q', 'options': ['A'], 'answer': 'A'},
    {'question': 'Q', 'options': ['A', 'A'], 'answer': 'A'},
    {'question': 'Q', 'options': ['A', 'B']},
    {'question': 'Q', 'options': 'A,B', 'answer': 'A'},
    'not an object',
    None,
])
def test_invalid_mcqs_are_dropped(item):
    assert normalize_mcq(item) is None


def test_missing_answer_is_added_to_options():
    mcq = normalize_mcq({'question': 'Q', 'options': ['A', 'B'], 'answer': 'C', 'explanation': 'because'})
    assert mcq == {'question': 'Q', 'options': ['A', 'B', 'C'], 'answer': 'C', 'explanation': 'because'}


def test_options_capped_at_four_keeping_answer():
    mcq = normalize_mcq({'question': 'Q', 'options': ['A', 'B', 'C', 'D'], 'answer': 'E'})
    assert len(mcq['options']) == 4
    assert 'E' in mcq['options']

    mcq = normalize_mcq({'question': 'Q', 'options': ['A', 'B', 'C', 'D', 'E', 'F'], 'answer': 'F'})
    assert mcq['options'] == ['A', 'B', 'C', 'F']


def test_answer_given_as_index():
    mcq = normalize_mcq({'question': 'Q', 'options': ['A', 'B', 'C'], 'answer': 1})
    assert mcq['answer'] == 'B'


def test_quiz_keeps_valid_questions():
    parsed = {'questions': [
        {'question': 'Q1', 'options': ['A', 'B', 'C', 'D'], 'answer': 'B', 'explanation': 'E'},
        {'question': 'Q2', 'options': ['A'], 'answer': 'A'},
    ]}
    questions = normalize(parsed, '', QUIZ)
    assert [q['question'] for q in questions] == ['Q1']


@pytest.mark.parametrize('parsed', [None, {}, {'questions': []}, {'questions': [{'question': 'Q'}]}, 'text'])
def test_quiz_without_usable_questions_fails(parsed):
    with pytest.raises(QuizGenerationFailed):
        normalize(parsed, 'raw', QUIZ)


def test_quiz_from_refusal_text_fails():
    raw = 'Sorry, I cannot help.'
    with pytest.raises(QuizGenerationFailed):
        normalize(extract_json(raw), raw, QUIZ)


def test_exam_degrades_to_raw_text():
    assert normalize(None, 'raw prediction', EXAM) == {
        'overview': 'raw prediction',
        'strategy': '',
        'topics': [],
        'meta': {'caution': EXAM_CAUTION},
    }


def test_exam_topics_are_coerced():
    parsed = {
        'overview': 'O',
        'strategy': 'S',
        'topics': [
            {'topic': 'Thermodynamics', 'reason': 'Every year', 'probability': 1.7,
             'sampleQuestions': ['q1', 'q2', 'q3', 'q4', 'q5']},
            {'topic': 'Optics', 'probability': 'high', 'sampleQuestions': 'none'},
            {'reason': 'no topic'},
        ],
        'meta': {'caution': 'Be careful'},
    }
    exam = normalize(parsed, '', EXAM)
    assert exam['topics'] == [
        {'topic': 'Thermodynamics', 'reason': 'Every year', 'probability': 1.7,
         'sampleQuestions': ['q1', 'q2', 'q3', 'q4']},
        {'topic': 'Optics', 'reason': '', 'probability': 0.0, 'sampleQuestions': []},
    ]
    assert exam['meta'] == {'caution': 'Be careful'}


def test_exam_missing_meta_gets_default_caution():
    exam = normalize({'overview': 'O'}, '', EXAM)
    assert exam['meta'] == {'caution': DEFAULT_CAUTION}


def test_unknown_kind():
    with pytest.raises(ValueError):
        normalize({}, '', 'poem')


# -- randomized malformed input ------------------------------------------

def _junk(rng, depth=0):
    choices = [
        lambda: None,
        lambda: rng.choice([True, False]),
        lambda: rng.randint(-10, 10),
        lambda: rng.choice([0.5, float('inf'), float('nan'), -1e308 * 10]),
        lambda: rng.choice(['', 'A', 'B', 'answer', '  spaced  ']),
    ]
    if depth < 3:
        choices += [
            lambda: [_junk(rng, depth + 1) for _ in range(rng.randint(0, 5))],
            lambda: {key: _junk(rng, depth + 1) for key in rng.sample(_KEYS, rng.randint(0, 5))},
        ]
    return rng.choice(choices)()


_KEYS = [
    'summary', 'keywords', 'mcqs', 'pptOutline', 'mindmap', 'flashcards', 'question', 'options',
    'answer', 'explanation', 'title', 'bullets', 'front', 'back', 'overview', 'strategy', 'topics',
    'meta', 'caution', 'topic', 'reason', 'probability', 'sampleQuestions', 'questions',
]


def _check_mcq(mcq):
    assert isinstance(mcq['question'], str) and mcq['question']
    assert 2 <= len(mcq['options']) <= 4
    assert mcq['answer'] in mcq['options']
    assert len(set(mcq['options'])) == len(mcq['options'])
    assert isinstance(mcq['explanation'], str)


def test_normalization_never_throws_on_random_input():
    rng = random.Random(1234)
    for _ in range(1500):
        parsed = _junk(rng)

        pack = normalize(parsed, 'fallback', STUDY_PACK)
        assert isinstance(pack['summary'], str)
        assert all(isinstance(k, str) for k in pack['keywords'])
        assert isinstance(pack['mindmap'], str)
        for mcq in pack['mcqs']:
            _check_mcq(mcq)

        exam = normalize(parsed, 'fallback', EXAM)
        assert isinstance(exam['overview'], str)
        assert isinstance(exam['meta']['caution'], str)
        for topic in exam['topics']:
            assert isinstance(topic['probability'], float)
            assert len(topic['sampleQuestions']) <= 4

        try:
            questions = normalize(parsed, 'fallback', QUIZ)
        except QuizGenerationFailed:
            continue
        assert questions
        for mcq in questions:
            _check_mcq(mcq)
