"""Credential-holding relay in front of the rating service.

The request body is forwarded byte for byte with the secret key attached, and
the upstream answer is returned unchanged. The rating key is only read here.
"""

import logging
import time

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from outfit_rater.config import RelaySettings, get_relay_settings
from outfit_rater.logging_setup import setup_logging
from outfit_rater.schemas import RelayHealthResponse

logger = logging.getLogger('outfit_rater.relay')

RATE_PATH = '/api/rate-outfit'
FAILURE_MESSAGE = 'Failed to rate outfit'


def _too_large(limit: int) -> JSONResponse:
    return JSONResponse(status_code=413, content={'error': f'Request body too large. Max {limit} bytes.'})


def _parse_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(',') if origin.strip()] or ['*']


def create_app(settings: RelaySettings | None = None) -> FastAPI:
    settings = settings or get_relay_settings()
    setup_logging(settings.log_level)
    timeout = max(int(settings.relay_timeout_ms), 1000) / 1000.0
    started_at = time.time()

    app = FastAPI(title='Outfit Rater Relay', version=settings.version)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(settings.cors_allow_origins),
        allow_methods=['*'],
        allow_headers=['*'],
    )

    @app.get('/health', response_model=RelayHealthResponse)
    def health():
        return RelayHealthResponse(
            ok=True,
            version=settings.version,
            upstream=settings.rating_api_url,
            credential_configured=bool(settings.rating_api_key),
            uptime_s=round(time.time() - started_at, 3),
        )

    @app.post(RATE_PATH)
    async def rate_outfit(request: Request):
        declared = request.headers.get('content-length', '')
        if declared.isdigit() and int(declared) > settings.max_body_bytes:
            logger.warning('Rejected rating request declared_bytes=%s', declared)
            return _too_large(settings.max_body_bytes)

        body = await request.body()
        logger.info('Received rating request bytes=%s', len(body))
        if len(body) > settings.max_body_bytes:
            return _too_large(settings.max_body_bytes)

        headers = {
            'content-type': 'application/json',
            'x-api-key': settings.rating_api_key,
            'anthropic-version': settings.anthropic_version,
        }
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                upstream = await client.post(settings.rating_api_url, content=body, headers=headers)
        except httpx.HTTPError:
            logger.exception('Rating service request failed url=%s', settings.rating_api_url)
            return JSONResponse(status_code=500, content={'error': FAILURE_MESSAGE})

        logger.info('Rating service responded status=%s bytes=%s', upstream.status_code, len(upstream.content))
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            media_type=upstream.headers.get('content-type', 'application/json'),
        )

    return app


app = create_app()
