"""Outgoing email over SMTP: login codes and the contact form."""
import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

from errors import ServiceNotConfigured, TransportError, ValidationError

logger = logging.getLogger(__name__)


def smtp_configured() -> bool:
    cfg = current_app.config
    return bool(cfg.get('SMTP_HOST') and cfg.get('SMTP_USER') and cfg.get('SMTP_PASS'))


def send_email(recipient: str, subject: str, body: str, reply_to: str = None) -> bool:
    """Send one message; False when SMTP is missing or the server refuses it."""
    cfg = current_app.config
    if not smtp_configured():
        logger.warning('SMTP is not fully configured; skipping email to %s.', recipient)
        return False

    host, port, user, password = cfg['SMTP_HOST'], cfg['SMTP_PORT'], cfg['SMTP_USER'], cfg['SMTP_PASS']
    msg = EmailMessage()
    msg['Subject'] = subject
    msg['From'] = cfg.get('SMTP_FROM') or user
    msg['To'] = recipient
    if reply_to:
        msg['Reply-To'] = reply_to
    msg.set_content(body)

    try:
        if port == 465:
            with smtplib.SMTP_SSL(host, port) as server:
                server.login(user, password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(host, port) as server:
                server.starttls()
                server.login(user, password)
                server.send_message(msg)
        return True
    except (smtplib.SMTPException, OSError) as exc:
        logger.error('Failed to send email to %s: %s', recipient, exc)
        return False


def send_otp_email(recipient: str, code: str) -> bool:
    minutes = current_app.config['OTP_TTL_MINUTES']
    body = (
        f'Hi,\n\nUse the code {code} to finish signing in to AI Study Buddy. '
        f'It expires in {minutes} minutes and can only be used once.\n\n'
        'If you did not request this, please ignore this email.'
    )
    return send_email(recipient, 'Your AI Study Buddy login code', body)


def _single_line(value) -> str:
    if not isinstance(value, str):
        return ''
    value = value.strip()
    # header values cannot carry line breaks
    return '' if '\n' in value or '\r' in value else value


def send_contact_message(name, email, message) -> str:
    """Mail a contact form to the site owner and a copy to the sender; returns the owner address."""
    name = _single_line(name)
    email = _single_line(email)
    message = message.strip() if isinstance(message, str) else ''
    if not name or not email or not message:
        raise ValidationError('Missing fields')
    if '@' not in email:
        raise ValidationError('Please enter a valid email address.')

    cfg = current_app.config
    recipient = cfg.get('CONTACT_RECEIVER') or cfg.get('SMTP_USER')
    if not smtp_configured() or not recipient:
        raise ServiceNotConfigured('Email is not configured on the server.')

    sent = send_email(
        recipient,
        f'Contact Form Submission from {name}',
        f'Name: {name}\nEmail: {email}\nMessage: {message}',
        reply_to=email,
    )
    if not sent:
        raise TransportError('Failed to send message')

    confirmation = (
        f'Hi {name},\n\n'
        "We've received your message and will get back to you as soon as possible. "
        'We typically respond within 24 hours.\n\n'
        f'Your message:\n{message}\n\n'
        'Best regards,\nAI Study Buddy Team'
    )
    if not send_email(email, 'Thank you for contacting AI Study Buddy', confirmation):
        raise TransportError('Failed to send message')

    logger.info('Contact message from %s forwarded to %s', email, recipient)
    return recipient
