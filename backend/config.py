import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_TRANSPORT = os.getenv("GEMINI_TRANSPORT", "sdk")  # sdk | rest
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_TIMEOUT = float(os.getenv("GEMINI_TIMEOUT", "60"))
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.4"))

# Upload limits (PNG, JPG or WEBP, max 5MB)
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
ALLOWED_IMAGE_TYPES = ("image/png", "image/jpeg", "image/webp")

# Preflight: large inline images are downscaled and re-encoded before the model call
IMAGE_MAX_DIMENSION = int(os.getenv("IMAGE_MAX_DIMENSION", "1200"))
IMAGE_REENCODE_BYTES = int(os.getenv("IMAGE_REENCODE_BYTES", "700000"))
IMAGE_JPEG_QUALITY = int(os.getenv("IMAGE_JPEG_QUALITY", "75"))
# Decoded size cap; larger images are rejected before Pillow decodes them
IMAGE_MAX_PIXELS = int(os.getenv("IMAGE_MAX_PIXELS", "50000000"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_raw_gemini_keys() -> str:
    """Read the key setting at call time so rotated keys apply without a restart."""
    return os.getenv("GEMINI_API_KEYS", "") or os.getenv("GEMINI_API_KEY", "") or ""
