import logging
import random
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
import requests
from flask import current_app, g, request

from errors import (AuthenticationError, ConflictError, NotFoundError,
                    TransportError, ValidationError)
from mailer import send_otp_email
from models import db, User

logger = logging.getLogger(__name__)

GOOGLE_TOKENINFO_URL = 'https://oauth2.googleapis.com/tokeninfo'


def _normalize_email(email) -> str:
    return (email or '').strip().lower() if isinstance(email, str) else ''


def find_user(email: str):
    return User.query.filter_by(email=_normalize_email(email)).first()


# --- Tokens ---

def issue_token(user: User) -> str:
    cfg = current_app.config
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(user.id),
        'email': user.email,
        'iat': now,
        'exp': now + timedelta(days=cfg['JWT_TTL_DAYS']),
    }
    return jwt.encode(payload, cfg['JWT_SECRET'], algorithm='HS256')


def user_from_token(token: str) -> User:
    try:
        payload = jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=['HS256'])
    except jwt.PyJWTError:
        raise AuthenticationError()
    user = find_user(payload.get('email'))
    if not user:
        raise AuthenticationError()
    return user


def _extract_token_from_header() -> str:
    header = request.headers.get('Authorization', '')
    if not header.lower().startswith('bearer '):
        return ''
    return header.split(' ', 1)[1].strip()


def require_auth(view):
    """Resolve the bearer token to ``g.current_user`` or answer 401."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = _extract_token_from_header()
        if not token:
            raise AuthenticationError('Unauthorized')
        g.current_user = user_from_token(token)
        return view(*args, **kwargs)
    return wrapper


# --- Registration and one-time codes ---

def register_user(email, password, first_name=None, last_name=None, mobile=None) -> User:
    email = _normalize_email(email)
    if not email or not password:
        raise ValidationError('Email and password are required')
    if not isinstance(password, str):
        raise ValidationError('Password must be a string')
    if find_user(email):
        raise ConflictError('This email is already registered')

    user = User(
        email=email,
        first_name=first_name or None,
        last_name=last_name or None,
        mobile=mobile or None,
        provider='credentials',
        verified=True,
    )
    user.set_password(password)
    try:
        db.session.add(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info('Registered user %s', email)
    return user


def _generate_otp() -> str:
    return f'{random.randint(100000, 999999)}'


def issue_otp(user: User) -> bool:
    code = _generate_otp()
    user.otp_code = code
    user.otp_expires = datetime.utcnow() + timedelta(minutes=current_app.config['OTP_TTL_MINUTES'])
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    sent = send_otp_email(user.email, code)
    if not sent:
        logger.info('OTP for %s: %s', user.email, code)
    return sent


def start_password_login(email, password) -> bool:
    user = find_user(email)
    if not isinstance(password, str) or not user or not user.check_password(password):
        raise AuthenticationError('Invalid email or password')
    return issue_otp(user)


def resend_otp(email) -> bool:
    if not _normalize_email(email):
        raise ValidationError('Email is required')
    user = find_user(email)
    if not user:
        raise NotFoundError('No account found for this email')
    return issue_otp(user)


def verify_otp(email, code) -> str:
    code = (code or '').strip() if isinstance(code, str) else str(code or '')
    if not _normalize_email(email) or not code:
        raise ValidationError('Email and OTP are required')

    user = find_user(email)
    if not user or not user.otp_code or not user.otp_expires:
        raise ValidationError('Invalid or expired code')
    if code != user.otp_code:
        raise ValidationError('Invalid code')
    if datetime.utcnow() > user.otp_expires:
        raise ValidationError('Code has expired. Please request a new one.')

    user.otp_code = None
    user.otp_expires = None
    user.verified = True
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return issue_token(user)


# --- Google sign-in ---

def verify_google_credential(credential: str) -> dict:
    try:
        resp = requests.get(GOOGLE_TOKENINFO_URL, params={'id_token': credential}, timeout=10)
    except requests.RequestException as exc:
        logger.error('Google tokeninfo request failed: %s', exc)
        raise TransportError('Could not reach Google. Please try again.') from exc
    if resp.status_code != 200:
        raise AuthenticationError('Invalid Google credential')

    info = resp.json()
    client_id = current_app.config.get('GOOGLE_CLIENT_ID')
    if client_id and info.get('aud') != client_id:
        raise AuthenticationError('Google credential was issued for another app')
    if not info.get('email'):
        raise ValidationError('Email not provided by Google')
    return info


def google_sign_in(credential) -> str:
    if not credential or not isinstance(credential, str):
        raise ValidationError('Google credential required')
    info = verify_google_credential(credential)
    email = _normalize_email(info['email'])
    email_verified = str(info.get('email_verified', '')).lower() == 'true'

    user = find_user(email)
    if user is None:
        user = User(email=email, provider='google', google_id=info.get('sub'), verified=email_verified)
        db.session.add(user)
    else:
        user.google_id = info.get('sub') or user.google_id
        user.verified = user.verified or email_verified
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return issue_token(user)
