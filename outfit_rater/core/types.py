import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class Detection:
    x: float
    y: float
    width: float
    height: float
    confidence: float
    label: str | None = None
    detection_id: str | None = None


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Crop:
    id: int
    image_data: bytes
    bbox: BoundingBox
    confidence: float

    @property
    def data_url(self) -> str:
        return 'data:image/jpeg;base64,' + base64.b64encode(self.image_data).decode('ascii')


@dataclass(frozen=True)
class RatingResult:
    score: float | None
    feedback: str


@dataclass(frozen=True)
class Rating:
    id: int
    score: float | None
    feedback: str
    crop: Crop
    failed: bool = False
