# datavista_app/services/encoder.py
from __future__ import annotations

import base64


def encode_content(data: bytes) -> str:
    """Whole file in memory, standard base64 (~33% larger than the input)."""
    return base64.b64encode(data or b"").decode("ascii")


def decode_content(text: str) -> bytes:
    # accepts the "data:<mime>;base64," form as well
    text = text or ""
    if text.startswith("data:") and "," in text:
        text = text.split(",", 1)[1]
    return base64.b64decode(text)


def as_data_url(data: bytes, mimetype: str) -> str:
    return f"data:{mimetype or 'application/octet-stream'};base64,{encode_content(data)}"
