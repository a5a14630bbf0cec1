"""Turn uploaded material (PDF, image, audio, web page) into plain text, and text into speech."""
import base64
import io
import logging
import re
from typing import List

import pdfplumber
import requests
from bs4 import BeautifulSoup, Comment
from flask import current_app
from gtts import gTTS
from gtts.tts import gTTSError

import llm
from errors import ServiceNotConfigured, TransportError, ValidationError

logger = logging.getLogger(__name__)

MAX_PDF_PAGES = 150
MAX_TEXT_CHARS = 60000
OCR_SPACE_ENDPOINT = 'https://api.ocr.space/parse/image'


def _looks_mangled(text: str) -> bool:
    """Heuristic for poor PDF extraction: no spaces, cid artifacts, long unbroken runs."""
    if not text:
        return True
    no_space_ratio = len(text.replace(' ', '')) / max(1, len(text))
    has_cid = '(cid:' in text
    long_run = any(len(tok) > 40 for tok in text.split())
    return no_space_ratio > 0.97 or has_cid or long_run


def _reconstruct_text_from_words(words: List[dict]) -> str:
    """Rebuild lines from pdfplumber extract_words output."""
    if not words:
        return ''
    words_sorted = sorted(words, key=lambda w: (round(w.get('top', 0) / 2), w.get('x0', 0)))
    lines = []
    current_top = None
    current_line: List[str] = []
    for w in words_sorted:
        top = round(w.get('top', 0) / 2)
        if current_top is not None and top != current_top and current_line:
            lines.append(' '.join(current_line))
            current_line = []
        current_top = top
        current_line.append(w.get('text', ''))
    if current_line:
        lines.append(' '.join(current_line))
    return '\n'.join(line.strip() for line in lines if line.strip())


def extract_pdf_text(stream) -> str:
    collected: List[str] = []
    try:
        with pdfplumber.open(stream) as pdf:
            for page in pdf.pages[:MAX_PDF_PAGES]:
                txt = page.extract_text(x_tolerance=2, y_tolerance=3) or ''
                if _looks_mangled(txt):
                    words = page.extract_words(x_tolerance=2, y_tolerance=3, keep_blank_chars=False)
                    txt = _reconstruct_text_from_words(words)
                if txt.strip():
                    collected.append(txt.strip())
    except Exception as exc:
        # pdfminer raises a zoo of parser errors for broken files
        logger.warning('PDF parse error: %s', exc)
        raise ValidationError('Please upload a valid PDF file.') from exc

    text = '\n'.join(collected)
    text = re.sub(r'\(cid:\d+\)', ' ', text)
    text = re.sub(r'[ \t]+', ' ', text).strip()
    if not text:
        raise ValidationError(
            "We couldn't extract any readable text from this PDF. It may be scanned or image-only."
        )
    return text[:MAX_TEXT_CHARS]


def extract_image_text(data: bytes, mime: str = 'image/png') -> str:
    api_key = current_app.config.get('OCR_SPACE_API_KEY')
    if not api_key:
        raise ServiceNotConfigured(
            'OCR backend is not configured. Set OCR_SPACE_API_KEY to enable image OCR.'
        )

    encoded = base64.b64encode(data).decode('ascii')
    form = {
        'apikey': api_key,
        'language': 'eng',
        'isOverlayRequired': 'false',
        'OCREngine': '2',
        'base64Image': f'data:{mime or "image/png"};base64,{encoded}',
    }
    try:
        resp = requests.post(OCR_SPACE_ENDPOINT, data=form, timeout=60)
    except requests.RequestException as exc:
        logger.error('OCR request failed: %s', exc)
        raise TransportError('Image OCR request failed.') from exc
    if not resp.ok:
        logger.error('OCR.space HTTP error %s', resp.status_code)
        raise TransportError('Image OCR request failed.')

    result = resp.json()
    if result.get('IsErroredOnProcessing'):
        message = result.get('ErrorMessage') or 'Image OCR processing error.'
        if isinstance(message, list):
            message = '; '.join(str(m) for m in message)
        raise ValidationError(str(message))

    parsed = result.get('ParsedResults') or []
    text = ''
    if parsed and isinstance(parsed[0].get('ParsedText'), str):
        text = parsed[0]['ParsedText'].strip()
    if not text:
        raise ValidationError('No readable text detected in this image.')
    return text


def transcribe_audio(filename: str, data: bytes) -> str:
    if not data:
        raise ValidationError('No audio file uploaded')
    text = llm.transcribe(filename or 'audio', data)
    if not text:
        raise TransportError('Could not transcribe audio file')
    return text


def _html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, 'html.parser')
    for tag in soup(['script', 'style', 'noscript']):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    return re.sub(r'\s+', ' ', soup.get_text(' ', strip=True)).strip()


def fetch_url_text(url: str) -> str:
    url = (url or '').strip()
    if not re.match(r'^https?://', url, re.IGNORECASE):
        raise ValidationError('Please enter a valid http(s) URL.')
    try:
        resp = requests.get(url, timeout=20, headers={'User-Agent': 'Mozilla/5.0 (AI Study Buddy)'})
    except requests.RequestException as exc:
        logger.error('URL fetch failed for %s: %s', url, exc)
        raise TransportError('Could not fetch that page. Please try again.') from exc
    if not resp.ok:
        raise TransportError(f'The page answered with HTTP {resp.status_code}.')

    text = _html_to_text(resp.text)
    if not text:
        raise ValidationError('No readable text found on that page.')
    return text[:MAX_TEXT_CHARS]


def synthesize_speech(text: str, lang: str = 'en', slow: bool = False) -> io.BytesIO:
    text = (text or '').strip()
    if not text:
        raise ValidationError('Text is required')
    try:
        tts = gTTS(text=text, lang=lang or 'en', slow=slow)
        buffer = io.BytesIO()
        tts.write_to_fp(buffer)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    except gTTSError as exc:
        logger.error('TTS failed: %s', exc)
        raise TransportError('Text-to-speech failed. Please try again.') from exc
    buffer.seek(0)
    return buffer
