import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, '') or default)
    except ValueError:
        return default


def _database_url() -> str:
    url = os.getenv('DATABASE_URL', 'sqlite:///study_buddy.db')
    # Heroku-style URLs still use the old scheme
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


class Config:
    # Any OpenAI-compatible endpoint works; Groq is the default provider
    LLM_API_KEY = (
        os.getenv('LLM_API_KEY')
        or os.getenv('GROQ_API_KEY')
        or os.getenv('OPENAI_API_KEY')
    )
    LLM_API_BASE = os.getenv('LLM_API_BASE', 'https://api.groq.com/openai/v1')
    LLM_MODEL = os.getenv('LLM_MODEL', 'llama-3.1-8b-instant')
    LLM_TRANSCRIBE_MODEL = os.getenv('LLM_TRANSCRIBE_MODEL', 'whisper-large-v3')

    JWT_SECRET = os.getenv('JWT_SECRET', 'dev-secret')
    JWT_TTL_DAYS = _int_env('JWT_TTL_DAYS', 7)
    OTP_TTL_MINUTES = _int_env('OTP_TTL_MINUTES', 5)

    SMTP_HOST = os.getenv('SMTP_HOST')
    SMTP_PORT = _int_env('SMTP_PORT', 587)
    SMTP_USER = os.getenv('SMTP_USER')
    SMTP_PASS = os.getenv('SMTP_PASS')
    SMTP_FROM = os.getenv('SMTP_FROM') or SMTP_USER
    # contact form mail goes here; falls back to SMTP_USER when unset
    CONTACT_RECEIVER = os.getenv('CONTACT_RECEIVER')

    OCR_SPACE_API_KEY = os.getenv('OCR_SPACE_API_KEY')
    GOOGLE_CLIENT_ID = os.getenv('GOOGLE_CLIENT_ID')

    HISTORY_LIMIT = _int_env('HISTORY_LIMIT', 100)

    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
