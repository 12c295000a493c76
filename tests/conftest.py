import pytest

from dither_studio.buffer import ImageBuffer


def make_gradient(width: int, height: int, alpha: int = 255) -> ImageBuffer:
    values = [((x + y * width) * 255) / max(1, width * height - 1) for y in range(height) for x in range(width)]
    return ImageBuffer.from_gray(width, height, values, bytes([alpha]) * (width * height))


def make_colour_noise(width: int, height: int) -> ImageBuffer:
    data = bytearray()
    for y in range(height):
        for x in range(width):
            data += bytes(((x * 37 + y * 11) % 256, (x * 5 + y * 71) % 256, (x * y * 13) % 256, 255))
    return ImageBuffer(width, height, bytes(data))


@pytest.fixture
def gradient() -> ImageBuffer:
    return make_gradient(16, 8)


@pytest.fixture
def colourful() -> ImageBuffer:
    return make_colour_noise(12, 10)


@pytest.fixture
def make_gray():
    def factory(width: int, height: int, value: int = 128, alpha: int = 255) -> ImageBuffer:
        return ImageBuffer.blank(width, height, (value, value, value, alpha))

    return factory
