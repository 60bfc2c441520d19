import base64
import binascii
import re
from io import BytesIO

from PIL import Image

from outfit_rater.core.errors import InvalidImageDataError, RaterError

_DATA_URL_PREFIX = re.compile(r'^data:image/\w+;base64,')


def load_image_from_bytes(image_bytes: bytes, max_bytes: int):
    if not image_bytes:
        raise RaterError('Missing image upload (field name: image).', code='MISSING_IMAGE', status_code=400)
    if len(image_bytes) > max_bytes:
        raise RaterError(f'Image too large. Max {max_bytes} bytes.', code='IMAGE_TOO_LARGE', status_code=413)

    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except Exception as exc:
        raise RaterError('Could not decode image.', code='IMAGE_DECODE_FAILED', status_code=400) from exc

    if image.mode != 'RGB':
        image = image.convert('RGB')
    return image


def encode_base64(image_bytes: bytes) -> str:
    return base64.b64encode(image_bytes).decode('ascii')


def strip_data_url_prefix(image_data: str) -> str:
    return _DATA_URL_PREFIX.sub('', image_data or '', count=1)


def to_base64_payload(image_data: str | bytes) -> str:
    """Normalize crop image data into a bare base64 string.

    Accepts raw bytes, a bare base64 string or a ``data:image/...;base64,`` URL.
    Raises InvalidImageDataError when nothing decodable is left.
    """
    if isinstance(image_data, (bytes, bytearray)):
        if not image_data:
            raise InvalidImageDataError('Invalid base64 image data')
        return encode_base64(bytes(image_data))

    payload = strip_data_url_prefix(image_data).strip()
    if not payload:
        raise InvalidImageDataError('Invalid base64 image data')
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageDataError('Invalid base64 image data') from exc
    return payload
