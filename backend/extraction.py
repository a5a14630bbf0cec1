"""
Recover a JSON object from free-form model output.

Models are asked for strict JSON but often wrap it in markdown fences or
add ``//`` comments. The recovery slices the text to the span between the
first ``{`` and the last ``}``, so prose around the payload must not itself
contain braces.
"""
import json
import logging
import re

logger = logging.getLogger(__name__)

_LINE_COMMENT = re.compile(r'//.*$', re.MULTILINE)


def _brace_span(text: str) -> str:
    start = text.find('{')
    end = text.rfind('}')
    if start != -1 and end != -1:
        return text[start:end + 1]
    return text


def extract_json(raw: str):
    """Return the parsed JSON value embedded in ``raw``, or None."""
    cleaned = (raw or '').strip()
    if cleaned.startswith('```'):
        cleaned = _brace_span(cleaned)

    cleaned = _LINE_COMMENT.sub('', cleaned)
    candidate = _brace_span(cleaned)

    try:
        return json.loads(candidate)
    except ValueError:
        logger.warning('Could not parse model output as JSON: %.200r', raw)
        return None
