from abc import ABC, abstractmethod

from outfit_rater.config import Settings
from outfit_rater.core.types import RatingResult


class Rater(ABC):
    @abstractmethod
    def rate(self, image_data: str) -> RatingResult:
        raise NotImplementedError

    @property
    @abstractmethod
    def model_id(self) -> str:
        raise NotImplementedError


def create_rater(settings: Settings) -> Rater:
    provider = settings.rater_provider.strip().lower()
    if provider == 'dummy':
        from outfit_rater.providers.dummy_rater import DummyRater

        return DummyRater()
    if provider == 'relay':
        from outfit_rater.providers.relay_rating_provider import RelayRatingProvider

        return RelayRatingProvider(
            base_url=settings.relay_base_url,
            rate_path=settings.relay_rate_path,
            model=settings.rating_model,
            max_tokens=settings.rating_max_tokens,
            timeout_ms=settings.rating_timeout_ms,
        )
    raise ValueError(f'Unsupported RATER_PROVIDER={settings.rater_provider!r}')
