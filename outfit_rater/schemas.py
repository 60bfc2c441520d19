from pydantic import BaseModel, Field


class BoundingBoxOut(BaseModel):
    x: float
    y: float
    width: float
    height: float


class CropOut(BaseModel):
    id: int
    image_data: str
    bbox: BoundingBoxOut
    confidence: float = Field(ge=0.0, le=1.0)


class RatingOut(BaseModel):
    id: int
    score: float | None = None
    feedback: str
    failed: bool = False
    crop: CropOut


class PipelineErrorOut(BaseModel):
    code: str
    message: str


class PipelineStateResponse(BaseModel):
    ok: bool = True
    phase: str
    run_id: int
    crop_count: int = 0
    rating_index: int | None = None
    ratings: list[RatingOut] = []
    error: PipelineErrorOut | None = None
    latency_ms: int | None = None


class RateResponse(BaseModel):
    ok: bool = True
    run_id: int
    detector: str
    rater: str
    latency_ms: int | None = None
    ratings: list[RatingOut]


class HealthResponse(BaseModel):
    ok: bool
    version: str
    detector: str | None = None
    rater: str | None = None
    uptime_s: float


class RelayHealthResponse(BaseModel):
    ok: bool
    version: str
    upstream: str
    credential_configured: bool
    uptime_s: float


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    message: str
    request_id: str | None = None
