from outfit_rater.core.rater import Rater
from outfit_rater.core.types import RatingResult
from outfit_rater.utils.image_io import to_base64_payload


class DummyRater(Rater):
    def __init__(self, model_id: str = 'dummy-rater-v1', score: float = 7) -> None:
        self._model_id = model_id
        self._score = score

    @property
    def model_id(self) -> str:
        return self._model_id

    def rate(self, image_data: str) -> RatingResult:
        to_base64_payload(image_data)
        return RatingResult(score=self._score, feedback='Clean lines and a coherent palette.')
