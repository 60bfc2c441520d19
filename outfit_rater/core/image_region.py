import io
import logging

from PIL import Image

from outfit_rater.core.types import BoundingBox, Crop, Detection

logger = logging.getLogger('outfit_rater.crop')


def center_to_top_left(detection: Detection) -> tuple[float, float]:
    source_x = max(0.0, float(detection.x) - float(detection.width) / 2)
    source_y = max(0.0, float(detection.y) - float(detection.height) / 2)
    return source_x, source_y


def clamp_region(detection: Detection, image_size: tuple[int, int]) -> tuple[float, float, float, float]:
    image_width, image_height = image_size
    source_x, source_y = center_to_top_left(detection)
    actual_width = min(float(detection.width), image_width - source_x)
    actual_height = min(float(detection.height), image_height - source_y)
    return source_x, source_y, actual_width, actual_height


def pixel_box(region: tuple[float, float, float, float], image_size: tuple[int, int]) -> tuple[int, int, int, int]:
    width, height = image_size
    source_x, source_y, actual_width, actual_height = region
    left = max(0, min(int(round(source_x)), width - 1))
    top = max(0, min(int(round(source_y)), height - 1))
    right = max(left + 1, min(int(round(source_x + actual_width)), width))
    bottom = max(top + 1, min(int(round(source_y + actual_height)), height))
    return left, top, right, bottom


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format='JPEG', quality=quality)
    return buffer.getvalue()


def crop_detections(image_bytes: bytes, detections: list[Detection], quality: int = 80) -> list[Crop]:
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except Exception:
        logger.warning('crop source image could not be decoded bytes=%s', len(image_bytes or b''), exc_info=True)
        return []
    if image.mode != 'RGB':
        image = image.convert('RGB')

    crops: list[Crop] = []
    for index, detection in enumerate(detections):
        region = clamp_region(detection, image.size)
        box = pixel_box(region, image.size)
        cropped = image.crop(box)
        rendered_width, rendered_height = cropped.size
        logger.debug('crop id=%s source=%s box=%s', index, region, box)
        crops.append(
            Crop(
                id=index,
                image_data=_encode_jpeg(cropped, quality),
                bbox=BoundingBox(
                    x=detection.x,
                    y=detection.y,
                    width=float(rendered_width),
                    height=float(rendered_height),
                ),
                confidence=detection.confidence,
            )
        )
    return crops
