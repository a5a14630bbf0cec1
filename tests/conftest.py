import pytest

import auth
import llm
from app import create_app
from models import db, User


@pytest.fixture
def app():
    app = create_app(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI='sqlite://',
        LLM_API_KEY='test-key',
        JWT_SECRET='test-secret-key-for-the-suite-0123456789',
        SMTP_HOST=None,
        CONTACT_RECEIVER=None,
        OCR_SPACE_API_KEY=None,
        GOOGLE_CLIENT_ID=None,
        HISTORY_LIMIT=100,
    )
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_llm(monkeypatch):
    """Replace the completion API; set ``fake_llm.reply`` to the text it returns."""
    class FakeLLM:
        reply = ''
        calls = []

        def __call__(self, messages, temperature=0.7, max_tokens=2048):
            self.calls.append({'messages': messages, 'temperature': temperature})
            if isinstance(self.reply, Exception):
                raise self.reply
            return self.reply

    fake = FakeLLM()
    fake.calls = []
    monkeypatch.setattr(llm, 'chat', fake)
    return fake


@pytest.fixture
def user(app):
    user = User(email='student@example.com', provider='credentials', verified=True)
    user.set_password('s3cret')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def auth_headers(user):
    return {'Authorization': f'Bearer {auth.issue_token(user)}'}
