import logging
import math
from typing import Any

import httpx

from outfit_rater.core.detector import Detector
from outfit_rater.core.errors import (
    InvalidImageDataError,
    MalformedResponseError,
    NoDetectionsError,
    TransportError,
)
from outfit_rater.core.types import Detection

logger = logging.getLogger('outfit_rater.detector')


def _number(row: dict, key: str) -> float:
    value = row.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise MalformedResponseError(f'Prediction field {key!r} is missing or not numeric')
    return float(value)


def _confidence(row: dict) -> float:
    value = _number(row, 'confidence')
    if not 0.0 <= value <= 1.0:
        raise MalformedResponseError(f'Prediction confidence {value!r} is outside [0, 1]')
    return value


def parse_predictions(body: Any, output_key: str = 'dynamic_crop') -> list[Detection]:
    if not isinstance(body, dict):
        raise MalformedResponseError('Invalid response format from detection API')
    outputs = body.get('outputs')
    if not isinstance(outputs, list) or not outputs:
        raise MalformedResponseError('Invalid response format from detection API')

    first_output = outputs[0]
    nested = first_output.get(output_key) if isinstance(first_output, dict) else None
    predictions = nested.get('predictions') if isinstance(nested, dict) else None
    if not isinstance(predictions, list):
        raise MalformedResponseError('No predictions found in the API response')

    detections: list[Detection] = []
    for row in predictions:
        if not isinstance(row, dict):
            raise MalformedResponseError('Prediction entry is not an object')
        label = row.get('class')
        detection_id = row.get('detection_id')
        detections.append(
            Detection(
                x=_number(row, 'x'),
                y=_number(row, 'y'),
                width=_number(row, 'width'),
                height=_number(row, 'height'),
                confidence=_confidence(row),
                label=str(label) if label is not None else None,
                detection_id=str(detection_id) if detection_id is not None else None,
            )
        )
    return detections


class RoboflowProvider(Detector):
    def __init__(
        self,
        model_url: str,
        api_key: str,
        output_key: str = 'dynamic_crop',
        timeout_ms: int = 20000,
    ) -> None:
        self._model_url = model_url
        self._api_key = api_key
        self._output_key = output_key
        self._timeout = max(int(timeout_ms), 1000) / 1000.0
        self._model_id = 'roboflow-workflow'

    @property
    def model_id(self) -> str:
        return self._model_id

    def detect(self, image_b64: str) -> list[Detection]:
        if not image_b64:
            raise InvalidImageDataError('Image payload is empty')

        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(
                    self._model_url,
                    json={'inputs': {'image': image_b64}, 'api_key': self._api_key},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f'Failed to detect people in image: {exc}') from exc

        if response.is_error:
            logger.error(
                'detection request failed status=%s reason=%s body=%s',
                response.status_code,
                response.reason_phrase,
                response.text[:500],
            )
            raise TransportError(
                f'Failed to detect people in image: {response.status_code} {response.reason_phrase}',
                upstream_status=response.status_code,
                upstream_text=response.text,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedResponseError('Detection API returned a non-JSON body') from exc

        detections = parse_predictions(body, self._output_key)
        logger.info('detection complete model=%s predictions=%s', self.model_id, len(detections))
        if not detections:
            raise NoDetectionsError('No people detected in the image')
        return detections
