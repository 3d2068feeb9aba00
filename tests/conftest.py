import base64
import struct
import zlib
from io import BytesIO
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image

from backend.services.gemini import GeminiClient


def make_image_bytes(size=(64, 48), fmt="PNG", color=(40, 160, 60)) -> bytes:
    out = BytesIO()
    Image.new("RGB", size, color).save(out, format=fmt)
    return out.getvalue()


def make_data_uri(size=(64, 48), fmt="PNG", mime="image/png") -> str:
    return f"data:{mime};base64," + base64.b64encode(make_image_bytes(size, fmt)).decode("ascii")


def make_png_header(width: int, height: int) -> bytes:
    """A tiny PNG that declares huge dimensions; only the header is valid."""

    def chunk(kind: bytes, body: bytes) -> bytes:
        return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", zlib.crc32(kind + body) & 0xFFFFFFFF)

    ihdr = struct.pack(">IIBBBBB", width, height, 1, 0, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", zlib.compress(b"\x00" * 64)) + chunk(b"IEND", b"")


class FakeGeminiClient(GeminiClient):
    """Returns canned replies in order and records every prompt it saw.

    A reply that is an Exception instance is raised instead of returned.
    """

    def __init__(self, replies: Optional[List[Any]] = None):
        super().__init__(api_keys=["test-key"])
        self.replies = list(replies or [])
        self.calls: List[Dict[str, Any]] = []

    def generate_json(self, prompt, images=(), temperature=None, max_output_tokens=4096):
        self.calls.append({"prompt": prompt, "images": list(images)})
        if not self.replies:
            raise AssertionError("FakeGeminiClient ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


IDENTIFICATION_REPLY = {
    "englishIdentification": {"commonName": "Tomato", "latinName": "Solanum lycopersicum"},
    "urduIdentification": {"commonName": "ٹماٹر", "latinNameRepresentation": "سولانم لائکوپرسیکم"},
    "confidence": 0.93,
    "wikiLink": "https://en.wikipedia.org/wiki/Tomato",
}

DISEASED_REPLY = {
    "diseaseDetected": True,
    "likelyCauses": "Early blight caused by Alternaria solani.",
    "diseaseStatusUrdu": "بیماری پائی گئی",
    "likelyCausesUrdu": "الٹرنیریا سولانی کی وجہ سے ابتدائی جھلساؤ۔",
}

HEALTHY_REPLY = {
    "diseaseDetected": False,
    "likelyCauses": "",
    "diseaseStatusUrdu": "صحت مند",
    "likelyCausesUrdu": "",
}

TREATMENT_REPLY = {
    "suggestedSolutions": "Remove infected leaves.\nImprove air circulation.",
    "preventativeMeasures": "Rotate crops every season.",
    "suggestedSolutionsUrdu": "متاثرہ پتے ہٹا دیں۔",
    "preventativeMeasuresUrdu": "",
    "chemicalTreatments": [
        {
            "chemicalName": "Chlorothalonil",
            "instructions": "Spray every 7-10 days. Wear gloves.",
            "chemicalNameUrdu": "کلوروتھالونل",
            "instructionsUrdu": "",
            "productsInPakistan": [
                {"brandName": "Daconil", "manufacturer": "Syngenta", "cropUsage": "Vegetables"}
            ],
        }
    ],
    "additionalNotes": "Always verify product suitability and follow local regulations and label instructions.",
}


@pytest.fixture
def data_uri():
    return make_data_uri()


@pytest.fixture
def small_image_limits(monkeypatch):
    """Shrink preflight thresholds so tests can use small images."""
    from backend import config

    monkeypatch.setattr(config, "IMAGE_MAX_DIMENSION", 100)
    monkeypatch.setattr(config, "IMAGE_REENCODE_BYTES", 10_000_000)
    monkeypatch.setattr(config, "MAX_UPLOAD_BYTES", 5 * 1024 * 1024)
    return config
