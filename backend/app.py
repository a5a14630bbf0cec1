import logging

from flask import Blueprint, Flask, current_app, g, jsonify, request, send_file
from flask_cors import CORS

import analytics
import auth
import generators
import mailer
import sources
from config import Config
from console import register_commands
from errors import NotFoundError, StudyBuddyError, ValidationError
from history import (HistoryRepository, SESSIONS, QUIZ_RESULTS, PLANS,
                     new_study_session, new_study_plan)
from models import db
from planner import build_study_plan
from quiz_session import MODES, QuizResult, new_entry_id, utc_now_iso

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _uploaded_file(field='file'):
    file = request.files.get(field)
    if file is None or not file.filename:
        raise ValidationError('No file uploaded')
    return file


def _history() -> HistoryRepository:
    return HistoryRepository()


@api.route('/health', methods=['GET'])
def health_check():
    return jsonify({'status': 'ok'})


# --- Auth ---

@api.route('/auth/register', methods=['POST'])
def auth_register():
    data = _json_body()
    auth.register_user(
        data.get('email'),
        data.get('password'),
        first_name=data.get('firstName'),
        last_name=data.get('lastName'),
        mobile=data.get('mobile'),
    )
    return jsonify({'success': True, 'message': 'Account created. You can now sign in.'})


@api.route('/auth/login', methods=['POST'])
def auth_login():
    data = _json_body()
    email_sent = auth.start_password_login(data.get('email'), data.get('password'))
    return jsonify({
        'success': True,
        'otpRequired': True,
        'emailSent': email_sent,
        'message': 'We sent a one-time code to your email.',
    })


@api.route('/auth/verify-otp', methods=['POST'])
def auth_verify_otp():
    data = _json_body()
    token = auth.verify_otp(data.get('email'), data.get('otp'))
    return jsonify({'token': token})


@api.route('/auth/resend-otp', methods=['POST'])
def auth_resend_otp():
    data = _json_body()
    email_sent = auth.resend_otp(data.get('email'))
    return jsonify({'success': True, 'emailSent': email_sent})


@api.route('/auth/google', methods=['POST'])
def auth_google():
    data = _json_body()
    token = auth.google_sign_in(data.get('credential'))
    return jsonify({'token': token})


@api.route('/auth/me', methods=['GET'])
@auth.require_auth
def auth_me():
    return jsonify({'user': g.current_user.to_dict()})


# --- AI features ---

@api.route('/summarize', methods=['POST'])
@auth.require_auth
def summarize():
    data = _json_body()
    pack = generators.generate_study_pack(
        data.get('text'),
        word_limit=data.get('maxWords'),
        mood=data.get('mood'),
        target_lang=data.get('targetLang'),
    )
    return jsonify(pack)


@api.route('/quiz/generate', methods=['POST'])
@auth.require_auth
def quiz_generate():
    data = _json_body()
    topic = data.get('topic') if isinstance(data.get('topic'), str) else ''
    questions = generators.generate_quiz(
        topic,
        difficulty=data.get('difficulty'),
        count=data.get('numQuestions'),
        mood=data.get('mood'),
    )
    return jsonify({'questions': questions})


@api.route('/exam-predictor', methods=['POST'])
@auth.require_auth
def exam_predictor():
    data = _json_body()

    def text(key):
        value = data.get(key)
        return value if isinstance(value, str) else ''

    prediction = generators.generate_exam_prediction(text('syllabus'), text('pastPapers'), text('examName'))
    return jsonify(prediction)


@api.route('/chat', methods=['POST'])
@auth.require_auth
def chat():
    data = _json_body()
    reply = generators.chat_tutor(
        data.get('messages'),
        context=data.get('context'),
        personality=data.get('personality'),
        subject=data.get('subject'),
        practice=data.get('generatePractice') is True,
        explain_differently=data.get('explainDifferently') is True,
    )
    return jsonify({'reply': reply})


# --- Source extraction ---

@api.route('/pdf', methods=['POST'])
def pdf_extract():
    file = _uploaded_file()
    if file.mimetype and file.mimetype not in ('application/pdf', 'application/octet-stream'):
        raise ValidationError('Please upload a valid PDF file.')
    return jsonify({'text': sources.extract_pdf_text(file.stream)})


@api.route('/ocr', methods=['POST'])
def ocr_extract():
    file = _uploaded_file()
    if file.mimetype and not file.mimetype.startswith('image/'):
        raise ValidationError('Please upload a valid image file.')
    return jsonify({'text': sources.extract_image_text(file.read(), file.mimetype)})


@api.route('/audio', methods=['POST'])
def audio_transcribe():
    file = _uploaded_file()
    return jsonify({'text': sources.transcribe_audio(file.filename, file.read())})


@api.route('/url', methods=['POST'])
def url_extract():
    return jsonify({'text': sources.fetch_url_text(_json_body().get('url'))})


@api.route('/tts', methods=['POST'])
def tts_generate():
    data = _json_body()
    buffer = sources.synthesize_speech(
        data.get('text') if isinstance(data.get('text'), str) else '',
        lang=data.get('lang') or 'en',
        slow=bool(data.get('slow', False)),
    )
    return send_file(buffer, mimetype='audio/mpeg', as_attachment=False, download_name='speech.mp3')


@api.route('/contact', methods=['POST'])
def contact():
    data = _json_body()
    recipient = mailer.send_contact_message(data.get('name'), data.get('email'), data.get('message'))
    return jsonify({'success': True, 'recipient': recipient})


@api.route('/study-plan', methods=['POST'])
def study_plan():
    data = _json_body()
    subjects = data.get('subjects') if isinstance(data.get('subjects'), str) else ''
    if not subjects.strip():
        raise ValidationError('Please enter at least one subject')
    exam_date = data.get('examDate') if isinstance(data.get('examDate'), str) else ''
    return jsonify(build_study_plan(exam_date, subjects, data.get('dailyHours')))


# --- History, analytics and dashboard ---

@api.route('/history/sessions', methods=['GET', 'POST'])
@auth.require_auth
def history_sessions():
    repo = _history()
    user_id = g.current_user.id
    if request.method == 'GET':
        return jsonify({'sessions': repo.get(user_id, SESSIONS)})

    data = _json_body()
    summary = data.get('summary') if isinstance(data.get('summary'), str) else ''
    title = data.get('title') if isinstance(data.get('title'), str) else ''
    session = new_study_session(data.get('mode'), title, summary)
    repo.append(user_id, SESSIONS, session, current_app.config['HISTORY_LIMIT'])
    return jsonify({'session': session}), 201


@api.route('/history/quiz-results', methods=['GET', 'POST'])
@auth.require_auth
def history_quiz_results():
    repo = _history()
    user_id = g.current_user.id
    if request.method == 'GET':
        return jsonify({'results': repo.get(user_id, QUIZ_RESULTS)})

    data = _json_body()
    try:
        result = QuizResult(
            id=new_entry_id(),
            createdAt=utc_now_iso(),
            mode=data['mode'] if data.get('mode') in MODES else 'solo',
            difficulty=data.get('difficulty') if data.get('difficulty') in generators.DIFFICULTIES else 'medium',
            topic=str(data.get('topic') or '').strip()[:120],
            score=max(int(data.get('score', 0)), 0),
            totalQuestions=max(int(data.get('totalQuestions', 0)), 0),
            durationSeconds=max(int(data.get('durationSeconds', 0)), 0),
        ).to_dict()
    except (TypeError, ValueError, OverflowError):
        raise ValidationError('score, totalQuestions and durationSeconds must be integers')
    repo.append(user_id, QUIZ_RESULTS, result, current_app.config['HISTORY_LIMIT'])
    return jsonify({'result': result}), 201


@api.route('/history/plans', methods=['GET', 'POST'])
@auth.require_auth
def history_plans():
    repo = _history()
    user_id = g.current_user.id
    if request.method == 'GET':
        return jsonify({'plans': repo.get(user_id, PLANS)})

    data = _json_body()
    title = data.get('title') if isinstance(data.get('title'), str) else ''
    if not title.strip():
        raise ValidationError('Plan title is required')
    plan_date = data.get('date') if isinstance(data.get('date'), str) and data.get('date') else None
    plan = new_study_plan(title, plan_date)
    plans = repo.get(user_id, PLANS)
    plans.append(plan)
    repo.put(user_id, PLANS, plans)
    return jsonify({'plan': plan}), 201


@api.route('/history/plans/<plan_id>/toggle', methods=['POST'])
@auth.require_auth
def toggle_plan(plan_id):
    plan = _history().toggle_plan(g.current_user.id, plan_id)
    if plan is None:
        raise NotFoundError('Plan not found')
    return jsonify({'plan': plan})


@api.route('/analytics', methods=['GET'])
@auth.require_auth
def analytics_snapshot():
    repo = _history()
    user_id = g.current_user.id
    return jsonify(analytics.compute(repo.get(user_id, SESSIONS), repo.get(user_id, QUIZ_RESULTS)))


@api.route('/dashboard', methods=['GET'])
@auth.require_auth
def dashboard():
    repo = _history()
    user_id = g.current_user.id
    sessions = repo.get(user_id, SESSIONS)
    plans = repo.get(user_id, PLANS)
    return jsonify({
        'stats': analytics.dashboard_stats(sessions, plans),
        'plans': plans,
        'analytics': analytics.compute(sessions, repo.get(user_id, QUIZ_RESULTS)),
    })


@api.route('/quiz/leaderboard', methods=['GET'])
@auth.require_auth
def quiz_leaderboard():
    results = _history().get(g.current_user.id, QUIZ_RESULTS)
    return jsonify({'leaderboard': analytics.leaderboard(results)})


def handle_study_buddy_error(exc: StudyBuddyError):
    if exc.status_code >= 500:
        logger.error('%s: %s', type(exc).__name__, exc.message)
    return jsonify(exc.to_dict()), exc.status_code


def create_app(**overrides) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    app.config.update(overrides)
    CORS(app)

    db.init_app(app)
    app.register_blueprint(api)
    app.register_error_handler(StudyBuddyError, handle_study_buddy_error)
    register_commands(app)

    with app.app_context():
        db.create_all()

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    create_app().run(debug=True, host='0.0.0.0', port=5000)
