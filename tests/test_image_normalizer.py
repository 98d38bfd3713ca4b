import io

import pytest
from PIL import Image

from vidlock.core.errors import ImageProcessingError
from vidlock.services.image_normalizer import ImageNormalizer, parse_size

from conftest import make_image_bytes


def _open(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


def test_cover_produces_exact_portrait_geometry():
    result = ImageNormalizer().normalize(make_image_bytes(4000, 3000), "720x1280", "cover")

    image = _open(result.data)
    assert image.format == "JPEG"
    assert image.size == (720, 1280)
    assert (result.width, result.height) == (720, 1280)
    assert result.filename == "reference_720x1280.jpg"
    assert result.mime_type == "image/jpeg"
    assert result.quality == 92


def test_contain_letterboxes_to_exact_geometry():
    result = ImageNormalizer().normalize(make_image_bytes(400, 400, color=(255, 255, 255)), "1280x720", "contain")

    image = _open(result.data).convert("RGB")
    assert image.size == (1280, 720)
    # Bars on the left and right, picture in the middle
    left = image.getpixel((5, 360))
    middle = image.getpixel((640, 360))
    assert sum(left) < 60
    assert sum(middle) > 700


def test_transparent_input_is_flattened_to_rgb():
    buf = io.BytesIO()
    Image.new("RGBA", (300, 200), (10, 20, 30, 0)).save(buf, format="PNG")
    result = ImageNormalizer().normalize(buf.getvalue(), "1280x720")
    assert _open(result.data).mode == "RGB"


def test_oversize_output_is_reencoded_once_at_lower_quality():
    normalizer = ImageNormalizer(max_bytes=100)
    result = normalizer.normalize(make_image_bytes(640, 480), "1280x720")

    # Still larger than the ceiling after the second encode: accepted as-is
    assert result.quality == 80
    assert len(result.data) > 100
    assert _open(result.data).size == (1280, 720)


def test_undecodable_bytes_raise_image_processing_error():
    with pytest.raises(ImageProcessingError) as excinfo:
        ImageNormalizer().normalize(b"definitely not an image", "1280x720")
    assert excinfo.value.status_code == 422


def test_parse_size_rejects_garbage():
    assert parse_size("720x1280") == (720, 1280)
    with pytest.raises(ImageProcessingError):
        parse_size("720 by 1280")
    with pytest.raises(ImageProcessingError):
        parse_size("0x10")


def test_target_above_pixel_limit_is_rejected_before_resizing():
    with pytest.raises(ImageProcessingError) as excinfo:
        ImageNormalizer().normalize(make_image_bytes(64, 64), "60000x60000")
    assert "pixel limit" in excinfo.value.message
