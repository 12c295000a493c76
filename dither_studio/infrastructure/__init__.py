"""Infrastructure helpers for fetching sources, caching and responses."""

from .cache import AdapterCache
from .network import SourceFetcher, apply_base_and_path, decode_image
from .responses import encode_png, send_png

__all__ = [
    "AdapterCache",
    "SourceFetcher",
    "apply_base_and_path",
    "decode_image",
    "encode_png",
    "send_png",
]
