"""Request building and response interpretation for the outfit rating service.

The rating service is a language model, so the answer text is parsed in two
tiers: a strict JSON object first, then a free-text score search.
"""

import json
import math
import re
from typing import Any

from outfit_rater.core.errors import MalformedResponseError, RatingServiceError, TransportError
from outfit_rater.core.types import RatingResult

RATING_PROMPT = (
    "Please rate this person's outfit from 0.0-10.0 (10.0 being the best). "
    'Consider style, color coordination, fit, and overall aesthetic. '
    'Provide a brief explanation for your rating. '
    'Format your response as JSON with "score" (number) and "feedback" (string) fields.'
)

FALLBACK_SCORE = 5
MIN_FALLBACK_SCORE = 1
MAX_FALLBACK_SCORE = 10

_SCORE_PATTERN = re.compile(r'(\d+)/10|\b(\d+)\b', flags=re.ASCII)
_CODE_FENCE = re.compile(r'^```[a-zA-Z]*\s*\n(.*?)\n?```$', flags=re.DOTALL)


def build_rating_request(image_b64: str, model: str, max_tokens: int, media_type: str = 'image/jpeg') -> dict[str, Any]:
    return {
        'model': model,
        'max_tokens': max_tokens,
        'messages': [
            {
                'role': 'user',
                'content': [
                    {
                        'type': 'image',
                        'source': {'type': 'base64', 'media_type': media_type, 'data': image_b64},
                    },
                    {'type': 'text', 'text': RATING_PROMPT},
                ],
            }
        ],
    }


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    match = _CODE_FENCE.match(stripped)
    return match.group(1).strip() if match else stripped


def parse_strict(text: str) -> RatingResult | None:
    try:
        parsed = json.loads(_strip_code_fence(text))
    except (ValueError, RecursionError):
        return None
    if not isinstance(parsed, dict):
        return None

    score = parsed.get('score')
    feedback = parsed.get('feedback')
    if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score):
        return None
    if not isinstance(feedback, str):
        return None
    return RatingResult(score=score, feedback=feedback)


def parse_fallback(text: str) -> RatingResult:
    # Any standalone number wins if it comes first, e.g. "my 10 year reunion".
    match = _SCORE_PATTERN.search(text)
    if match:
        score = int(match.group(1) or match.group(2))
        score = min(max(score, MIN_FALLBACK_SCORE), MAX_FALLBACK_SCORE)
    else:
        score = FALLBACK_SCORE
    return RatingResult(score=score, feedback=text)


def parse_rating_text(text: str) -> RatingResult:
    return parse_strict(text) or parse_fallback(text)


def interpret_rating_response(body: Any, status_code: int = 200) -> RatingResult:
    if isinstance(body, dict) and body.get('type') == 'error':
        error = body.get('error')
        message = error.get('message') if isinstance(error, dict) else None
        raise RatingServiceError(str(message or 'Failed to rate outfit'))

    if isinstance(body, dict) and isinstance(body.get('error'), str):
        raise TransportError(body['error'], upstream_status=status_code)

    content = body.get('content') if isinstance(body, dict) else None
    first = content[0] if isinstance(content, list) and content else None
    text = first.get('text') if isinstance(first, dict) else None
    if not isinstance(text, str) or not text:
        raise MalformedResponseError('Invalid response format from rating API')

    return parse_rating_text(text)
