import logging

import httpx

from outfit_rater.core.errors import MalformedResponseError, TransportError
from outfit_rater.core.rater import Rater
from outfit_rater.core.rating_parser import build_rating_request, interpret_rating_response
from outfit_rater.core.types import RatingResult
from outfit_rater.utils.image_io import to_base64_payload

logger = logging.getLogger('outfit_rater.rater')


def _join_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class RelayRatingProvider(Rater):
    def __init__(
        self,
        base_url: str = 'http://127.0.0.1:3001',
        rate_path: str = '/api/rate-outfit',
        model: str = 'claude-3-5-sonnet-20241022',
        max_tokens: int = 300,
        timeout_ms: int = 60000,
    ) -> None:
        self._url = _join_url(base_url, rate_path)
        self._model = model
        self._max_tokens = int(max_tokens)
        self._timeout = max(int(timeout_ms), 1000) / 1000.0

    @property
    def model_id(self) -> str:
        return self._model

    def rate(self, image_data: str) -> RatingResult:
        image_b64 = to_base64_payload(image_data)
        payload = build_rating_request(image_b64, self._model, self._max_tokens)

        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(self._url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f'Failed to reach rating relay: {exc}') from exc

        try:
            body = response.json()
        except ValueError as exc:
            if response.is_error:
                raise TransportError(
                    f'Rating relay failed: {response.status_code} {response.reason_phrase}',
                    upstream_status=response.status_code,
                    upstream_text=response.text,
                ) from exc
            raise MalformedResponseError('Rating relay returned a non-JSON body') from exc

        result = interpret_rating_response(body, status_code=response.status_code)
        logger.info('rating complete model=%s status=%s score=%s', self._model, response.status_code, result.score)
        return result
