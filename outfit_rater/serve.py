import uvicorn

from outfit_rater.config import get_relay_settings, get_settings
from outfit_rater.logging_setup import setup_logging


def run_app() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run('outfit_rater.main:app', host=settings.host, port=settings.port, log_level=settings.log_level.lower())


def run_relay() -> None:
    settings = get_relay_settings()
    setup_logging(settings.log_level)
    uvicorn.run('outfit_rater.relay:app', host=settings.relay_host, port=settings.relay_port, log_level=settings.log_level.lower())
