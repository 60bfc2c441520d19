import base64
import binascii
from io import BytesIO

from PIL import Image

from outfit_rater.core.detector import Detector
from outfit_rater.core.errors import InvalidImageDataError
from outfit_rater.core.types import Detection


class DummyProvider(Detector):
    def __init__(self, model_id: str = 'dummy-people-v1') -> None:
        self._model_id = model_id

    @property
    def model_id(self) -> str:
        return self._model_id

    def detect(self, image_b64: str) -> list[Detection]:
        try:
            image = Image.open(BytesIO(base64.b64decode(image_b64, validate=True)))
        except (binascii.Error, ValueError, OSError) as exc:
            raise InvalidImageDataError('Image payload is not a decodable image') from exc

        width, height = image.size
        return [
            Detection(x=width * 0.25, y=height * 0.5, width=width * 0.4, height=height * 0.9, confidence=0.91, label='person'),
            Detection(x=width * 0.75, y=height * 0.5, width=width * 0.4, height=height * 0.9, confidence=0.74, label='person'),
        ]
