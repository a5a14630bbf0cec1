import logging

from flask import current_app
from openai import OpenAI, OpenAIError

from errors import ServiceNotConfigured, TransportError

logger = logging.getLogger(__name__)


def get_client() -> OpenAI:
    """One OpenAI-compatible client per app, built from its config."""
    client = current_app.extensions.get('llm_client')
    if client is None:
        api_key = current_app.config.get('LLM_API_KEY')
        if not api_key:
            raise ServiceNotConfigured('Missing LLM_API_KEY environment variable')
        client = OpenAI(base_url=current_app.config['LLM_API_BASE'], api_key=api_key)
        current_app.extensions['llm_client'] = client
    return client


def chat(messages, temperature=0.7, max_tokens=2048) -> str:
    client = get_client()
    try:
        response = client.chat.completions.create(
            model=current_app.config['LLM_MODEL'],
            messages=messages,
            temperature=float(temperature),
            max_tokens=int(max_tokens),
        )
    except OpenAIError as exc:
        logger.error('LLM completion failed: %s', exc)
        raise TransportError() from exc

    if not response.choices:
        return ''
    return response.choices[0].message.content or ''


def transcribe(filename: str, data: bytes) -> str:
    client = get_client()
    try:
        transcription = client.audio.transcriptions.create(
            file=(filename, data),
            model=current_app.config['LLM_TRANSCRIBE_MODEL'],
            response_format='json',
        )
    except OpenAIError as exc:
        logger.error('Audio transcription failed: %s', exc)
        raise TransportError('Failed to transcribe audio on the server.') from exc
    return (getattr(transcription, 'text', '') or '').strip()
