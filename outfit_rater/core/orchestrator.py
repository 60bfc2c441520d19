"""Pipeline state machine: detect people, crop them, rate each crop in order.

One run is in flight at a time from the caller's point of view. Starting a new
run supersedes the previous one: the old run is not interrupted, but nothing it
produces afterwards is published.
"""

import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from outfit_rater.config import Settings
from outfit_rater.core.detector import Detector, create_detector
from outfit_rater.core.errors import CropExtractionError, NoDetectionsError, RaterError
from outfit_rater.core.image_region import crop_detections
from outfit_rater.core.rater import Rater, create_rater
from outfit_rater.core.types import Rating
from outfit_rater.utils.image_io import encode_base64
from outfit_rater.utils.timings import measure_ms

logger = logging.getLogger('outfit_rater.orchestrator')

FAILED_RATING_FEEDBACK = 'Failed to rate outfit'


class Phase(str, Enum):
    IDLE = 'idle'
    DETECTING = 'detecting'
    CROPPING = 'cropping'
    RATING = 'rating'
    DONE = 'done'
    FAILED = 'failed'


@dataclass(frozen=True)
class PipelineError:
    code: str
    message: str
    status_code: int = 500


@dataclass(frozen=True)
class PipelineState:
    phase: Phase = Phase.IDLE
    run_id: int = 0
    crop_count: int = 0
    rating_index: int | None = None
    ratings: tuple[Rating, ...] = ()
    error: PipelineError | None = None
    latency_ms: int | None = None

    @property
    def finished(self) -> bool:
        return self.phase in (Phase.DONE, Phase.FAILED)


Listener = Callable[[PipelineState], None]


class Orchestrator:
    def __init__(self, detector: Detector, rater: Rater, crop_quality: int = 80) -> None:
        self._detector = detector
        self._rater = rater
        self._crop_quality = int(crop_quality)
        self._lock = threading.Lock()
        self._state = PipelineState()
        self._listeners: list[Listener] = []

    @property
    def detector(self) -> Detector:
        return self._detector

    @property
    def rater(self) -> Rater:
        return self._rater

    @property
    def state(self) -> PipelineState:
        with self._lock:
            return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def reset(self) -> PipelineState:
        with self._lock:
            self._state = PipelineState(run_id=self._state.run_id + 1)
            state = self._state
            listeners = list(self._listeners)
        self._notify(listeners, state)
        return state

    def _publish(self, state: PipelineState) -> PipelineState:
        with self._lock:
            if state.run_id != self._state.run_id:
                logger.info('dropping superseded state run_id=%s phase=%s', state.run_id, state.phase.value)
                return state
            self._state = state
            listeners = list(self._listeners)
        self._notify(listeners, state)
        return state

    def _notify(self, listeners: list[Listener], state: PipelineState) -> None:
        for listener in listeners:
            listener(state)

    def _fail(self, state: PipelineState, exc: RaterError, elapsed_ms: int) -> PipelineState:
        logger.warning(
            'pipeline failed run_id=%s phase=%s code=%s message=%s',
            state.run_id,
            state.phase.value,
            exc.code,
            exc.message,
        )
        return self._publish(
            replace(
                state,
                phase=Phase.FAILED,
                rating_index=None,
                ratings=(),
                error=PipelineError(code=exc.code, message=exc.message, status_code=exc.status_code),
                latency_ms=elapsed_ms,
            )
        )

    def run(self, image_bytes: bytes) -> PipelineState:
        """Run the whole pipeline for one image and return this run's final state."""
        state = self.reset()
        try:
            return self._run_stages(state, image_bytes)
        except Exception:
            logger.exception('pipeline crashed run_id=%s', state.run_id)
            self._publish(
                replace(
                    state,
                    phase=Phase.FAILED,
                    error=PipelineError(code='UNEXPECTED_PIPELINE_ERROR', message='Unexpected pipeline error.'),
                )
            )
            raise

    def _run_stages(self, state: PipelineState, image_bytes: bytes) -> PipelineState:
        with measure_ms() as elapsed:
            try:
                state = self._publish(replace(state, phase=Phase.DETECTING))
                detections = self._detector.detect(encode_base64(image_bytes))
                if not detections:
                    raise NoDetectionsError('No people detected in the image')

                state = self._publish(replace(state, phase=Phase.CROPPING))
                crops = crop_detections(image_bytes, detections, quality=self._crop_quality)
                if not crops:
                    raise CropExtractionError('Failed to create crops from detected people')
            except RaterError as exc:
                return self._fail(state, exc, elapsed())

            ratings: list[Rating] = []
            for crop in crops:
                state = self._publish(
                    replace(
                        state,
                        phase=Phase.RATING,
                        crop_count=len(crops),
                        rating_index=crop.id,
                        ratings=tuple(ratings),
                    )
                )
                try:
                    result = self._rater.rate(crop.data_url)
                except RaterError as exc:
                    logger.warning('rating failed run_id=%s crop_id=%s code=%s', state.run_id, crop.id, exc.code)
                    ratings.append(Rating(id=crop.id, score=None, feedback=exc.message, crop=crop, failed=True))
                    continue
                except Exception:
                    logger.exception('rating crashed run_id=%s crop_id=%s', state.run_id, crop.id)
                    ratings.append(Rating(id=crop.id, score=None, feedback=FAILED_RATING_FEEDBACK, crop=crop, failed=True))
                    continue
                ratings.append(Rating(id=crop.id, score=result.score, feedback=result.feedback, crop=crop))

            state = self._publish(
                replace(
                    state,
                    phase=Phase.DONE,
                    rating_index=None,
                    ratings=tuple(ratings),
                    latency_ms=elapsed(),
                )
            )
        logger.info(
            'pipeline done run_id=%s crops=%s failed=%s latency_ms=%s',
            state.run_id,
            len(ratings),
            sum(1 for rating in ratings if rating.failed),
            state.latency_ms,
        )
        return state


def create_orchestrator(settings: Settings) -> Orchestrator:
    return Orchestrator(
        detector=create_detector(settings),
        rater=create_rater(settings),
        crop_quality=settings.crop_jpeg_quality,
    )
