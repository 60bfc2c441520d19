import logging
import time
import uuid

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse

from outfit_rater.config import get_settings
from outfit_rater.core.errors import RaterError
from outfit_rater.core.orchestrator import Orchestrator, Phase, PipelineState, create_orchestrator
from outfit_rater.core.types import Rating
from outfit_rater.logging_setup import setup_logging
from outfit_rater.schemas import (
    BoundingBoxOut,
    CropOut,
    ErrorResponse,
    HealthResponse,
    PipelineErrorOut,
    PipelineStateResponse,
    RateResponse,
    RatingOut,
)
from outfit_rater.utils.image_io import load_image_from_bytes

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger('outfit_rater')

app = FastAPI(title='Outfit Rater', version=settings.version)
started_at = time.time()

def _rating_out(rating: Rating) -> RatingOut:
    crop = rating.crop
    return RatingOut(
        id=rating.id,
        score=rating.score,
        feedback=rating.feedback,
        failed=rating.failed,
        crop=CropOut(
            id=crop.id,
            image_data=crop.data_url,
            bbox=BoundingBoxOut(x=crop.bbox.x, y=crop.bbox.y, width=crop.bbox.width, height=crop.bbox.height),
            confidence=crop.confidence,
        ),
    )


def _state_out(state: PipelineState) -> PipelineStateResponse:
    return PipelineStateResponse(
        ok=state.phase is not Phase.FAILED,
        phase=state.phase.value,
        run_id=state.run_id,
        crop_count=state.crop_count,
        rating_index=state.rating_index,
        ratings=[_rating_out(rating) for rating in state.ratings],
        error=PipelineErrorOut(code=state.error.code, message=state.error.message) if state.error else None,
        latency_ms=state.latency_ms,
    )


@app.on_event('startup')
def startup_event() -> None:
    orchestrator = create_orchestrator(settings)
    app.state.orchestrator = orchestrator
    logger.info(
        'Pipeline initialized detector_provider=%s detector=%s rater_provider=%s rater=%s relay=%s',
        settings.detector_provider,
        orchestrator.detector.model_id,
        settings.rater_provider,
        orchestrator.rater.model_id,
        settings.relay_base_url,
    )


@app.exception_handler(RaterError)
async def rater_error_handler(request: Request, exc: RaterError):
    request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
    payload = ErrorResponse(
        error=exc.code,
        message=exc.message,
        request_id=request_id,
    )
    return JSONResponse(status_code=exc.status_code, content=payload.model_dump())


@app.exception_handler(Exception)
async def generic_error_handler(request: Request, exc: Exception):
    request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
    logger.exception('Unhandled exception request_id=%s', request_id)
    payload = ErrorResponse(
        error='UNEXPECTED_SERVER_ERROR',
        message='Unexpected server error.',
        request_id=request_id,
    )
    return JSONResponse(status_code=500, content=payload.model_dump())


@app.get('/health', response_model=HealthResponse)
def health():
    orchestrator: Orchestrator | None = getattr(app.state, 'orchestrator', None)
    return HealthResponse(
        ok=orchestrator is not None,
        version=settings.version,
        detector=orchestrator.detector.model_id if orchestrator else None,
        rater=orchestrator.rater.model_id if orchestrator else None,
        uptime_s=round(time.time() - started_at, 3),
    )


@app.post('/rate', response_model=RateResponse)
def rate(request: Request, image: UploadFile = File(...)):
    request_id = request.headers.get('x-request-id') or str(uuid.uuid4())
    image_bytes = image.file.read()
    load_image_from_bytes(image_bytes, settings.max_image_bytes)

    orchestrator: Orchestrator = app.state.orchestrator
    state = orchestrator.run(image_bytes)
    if state.phase is Phase.FAILED:
        error = state.error
        if error is None:
            raise RaterError('Pipeline failed.', code='PIPELINE_FAILED', status_code=500)
        raise RaterError(error.message, code=error.code, status_code=error.status_code)

    logger.info(
        'rate request_id=%s run_id=%s bytes=%s ratings=%s failed=%s latency_ms=%s',
        request_id,
        state.run_id,
        len(image_bytes),
        len(state.ratings),
        sum(1 for rating in state.ratings if rating.failed),
        state.latency_ms,
    )
    return RateResponse(
        ok=True,
        run_id=state.run_id,
        detector=orchestrator.detector.model_id,
        rater=orchestrator.rater.model_id,
        latency_ms=state.latency_ms,
        ratings=[_rating_out(rating) for rating in state.ratings],
    )


@app.get('/state', response_model=PipelineStateResponse)
def pipeline_state():
    orchestrator: Orchestrator = app.state.orchestrator
    return _state_out(orchestrator.state)


@app.post('/reset', response_model=PipelineStateResponse)
def reset():
    orchestrator: Orchestrator = app.state.orchestrator
    return _state_out(orchestrator.reset())
