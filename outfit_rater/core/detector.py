from abc import ABC, abstractmethod

from outfit_rater.config import Settings
from outfit_rater.core.types import Detection


class Detector(ABC):
    @abstractmethod
    def detect(self, image_b64: str) -> list[Detection]:
        raise NotImplementedError

    @property
    @abstractmethod
    def model_id(self) -> str:
        raise NotImplementedError


def create_detector(settings: Settings) -> Detector:
    provider = settings.detector_provider.strip().lower()
    if provider == 'dummy':
        from outfit_rater.providers.dummy_provider import DummyProvider

        return DummyProvider(model_id='dummy-people-v1')
    if provider == 'roboflow':
        from outfit_rater.providers.roboflow_provider import RoboflowProvider

        return RoboflowProvider(
            model_url=settings.detector_model_url,
            api_key=settings.detector_api_key,
            output_key=settings.detector_output_key,
            timeout_ms=settings.detector_timeout_ms,
        )
    raise ValueError(f'Unsupported DETECTOR_PROVIDER={settings.detector_provider!r}')
