class RaterError(Exception):
    code = 'RATER_ERROR'
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}


class TransportError(RaterError):
    code = 'TRANSPORT_ERROR'
    status_code = 502

    def __init__(self, message: str, *, upstream_status: int | None = None, upstream_text: str | None = None):
        super().__init__(message, details={'upstream_status': upstream_status, 'upstream_text': upstream_text})
        self.upstream_status = upstream_status
        self.upstream_text = upstream_text


class MalformedResponseError(RaterError):
    code = 'MALFORMED_RESPONSE'
    status_code = 502


class NoDetectionsError(RaterError):
    code = 'NO_DETECTIONS'
    status_code = 422


class CropExtractionError(RaterError):
    code = 'CROP_EXTRACTION_FAILED'
    status_code = 422


class InvalidImageDataError(RaterError):
    code = 'INVALID_IMAGE_DATA'
    status_code = 400


class RatingServiceError(RaterError):
    code = 'RATING_SERVICE_ERROR'
    status_code = 502
