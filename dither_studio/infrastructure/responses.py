from __future__ import annotations

import io

from flask import send_file

from ..buffer import ImageBuffer


def encode_png(buf: ImageBuffer) -> bytes:
    out = io.BytesIO()
    buf.to_image().save(out, "PNG", optimize=True)
    return out.getvalue()


def send_png(buf: ImageBuffer):
    return send_file(io.BytesIO(encode_png(buf)), mimetype="image/png")
