"""
Gemini Model Client
Sends a prompt plus inline leaf images to Google Gemini and returns the JSON
object from the reply. Supports the google-generativeai client library or the
REST generateContent endpoint, with rotation across several API keys on quota errors.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import google.generativeai as genai
import httpx

from backend import config
from backend.errors import GeminiConfigurationError, ModelOutputError
from backend.services.imaging import InlineImage

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT_TOKENS = 4096


def get_gemini_api_keys() -> List[str]:
    """Return a prioritized list of Gemini API keys.

    Supports either GEMINI_API_KEY (single) or GEMINI_API_KEYS (comma/whitespace-separated).
    Each token is trimmed and only the first whitespace-delimited token per line is used so
    accidental comments do not leak into requests.
    """
    raw = config.get_raw_gemini_keys()
    keys: List[str] = []
    for chunk in raw.replace(",", "\n").splitlines():
        token = chunk.strip()
        if not token or token.startswith("#"):
            continue
        keys.append(token.split()[0].strip())
    return keys


def extract_first_json_object(content: str) -> Dict[str, Any]:
    """Extract and parse the first JSON object from a text blob.

    Handles cases where the model returns a JSON object followed by extra text
    like reasoning or explanations. Also strips Markdown code fences.
    """
    txt = (content or "").strip()
    if txt.startswith("```json"):
        txt = txt[7:]
    if txt.startswith("```"):
        txt = txt[3:]
    if txt.endswith("```"):
        txt = txt[:-3]
    txt = txt.strip()

    # Fast path: try full parse
    try:
        data = json.loads(txt)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    # Fallback: extract the first balanced {...} block, ignoring braces inside strings
    start = txt.find("{")
    if start == -1:
        raise ValueError("No JSON object start found")
    depth = 0
    in_string = False
    escaped = False
    end = None
    for i in range(start, len(txt)):
        ch = txt[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                end = i
                break
    if end is None:
        raise ValueError("No complete JSON object found")
    try:
        return json.loads(txt[start:end + 1])
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse JSON content: {e}")


def _is_quota_error(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429
    msg = str(exc).lower()
    return "429" in msg or "quota" in msg or "resource exhausted" in msg


def _text_from_rest_response(response: Dict[str, Any]) -> str:
    candidates = response.get("candidates", [])
    if not candidates:
        raise ModelOutputError("No response candidates")
    parts = candidates[0].get("content", {}).get("parts", [])
    if not parts:
        raise ModelOutputError("No response parts")
    return "".join(p.get("text", "") for p in parts)


class GeminiClient:
    def __init__(
        self,
        api_keys: Optional[List[str]] = None,
        model: str = config.GEMINI_MODEL,
        transport: str = config.GEMINI_TRANSPORT,
        api_base: str = config.GEMINI_API_BASE,
        timeout: float = config.GEMINI_TIMEOUT,
        temperature: float = config.GEMINI_TEMPERATURE,
        http_transport: Optional[httpx.BaseTransport] = None,
    ):
        if transport not in ("sdk", "rest"):
            raise ValueError(f"Unknown Gemini transport '{transport}' (expected 'sdk' or 'rest')")
        self._api_keys = api_keys
        self.model = model
        self.transport = transport
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self._http_transport = http_transport

    @property
    def api_keys(self) -> List[str]:
        if self._api_keys is not None:
            return self._api_keys
        return get_gemini_api_keys()

    def generate_json(
        self,
        prompt: str,
        images: Sequence[InlineImage] = (),
        temperature: Optional[float] = None,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> Dict[str, Any]:
        """Run one prompt and return the JSON object in the reply.

        An empty reply yields an empty dict; callers decide whether that is an error.
        """
        api_keys = self.api_keys
        if not api_keys:
            raise GeminiConfigurationError("GEMINI_API_KEY not configured")

        generation = {
            "temperature": self.temperature if temperature is None else temperature,
            "max_output_tokens": max_output_tokens,
        }

        last_error: Optional[Exception] = None
        for idx, api_key in enumerate(api_keys):
            key_label = f"{api_key[:10]}..."
            try:
                if self.transport == "rest":
                    logger.info("[Gemini] Calling API (REST) with key #%s: %s", idx + 1, key_label)
                    text = self._generate_rest(api_key, prompt, images, generation)
                else:
                    logger.info("[Gemini] Using google-generativeai client (key #%s)", idx + 1)
                    text = self._generate_sdk(api_key, prompt, images, generation)
            except Exception as e:
                last_error = e
                if _is_quota_error(e) and idx + 1 < len(api_keys):
                    logger.warning("[Gemini] Key #%s quota/429, trying next key...", idx + 1)
                    continue
                raise

            if not text or not text.strip():
                logger.warning("[Gemini] Empty response text from model %s", self.model)
                return {}
            return extract_first_json_object(text)

        # Only reachable when every key hit its quota
        raise last_error

    def _generate_sdk(self, api_key: str, prompt: str, images: Sequence[InlineImage], generation: Dict[str, Any]) -> str:
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(self.model)
        contents: List[Any] = [prompt]
        contents.extend({"mime_type": img.mime_type, "data": img.data} for img in images)
        resp = model.generate_content(
            contents,
            generation_config={
                "temperature": generation["temperature"],
                "max_output_tokens": generation["max_output_tokens"],
                "response_mime_type": "application/json",
            },
        )
        return resp.text

    def _generate_rest(self, api_key: str, prompt: str, images: Sequence[InlineImage], generation: Dict[str, Any]) -> str:
        parts: List[Dict[str, Any]] = [{"text": prompt}]
        for img in images:
            parts.append({"inline_data": {"mime_type": img.mime_type, "data": img.base64}})

        payload = {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": generation["temperature"],
                "maxOutputTokens": generation["max_output_tokens"],
                "responseMimeType": "application/json",
            },
        }
        url = f"{self.api_base}/models/{self.model}:generateContent"

        with httpx.Client(timeout=self.timeout, transport=self._http_transport) as client:
            response = client.post(url, params={"key": api_key}, json=payload)
        logger.info("[Gemini] Response status: %s", response.status_code)
        if response.status_code != 200:
            logger.warning("[Gemini] Non-200 response body: %s...", response.text[:200])
        response.raise_for_status()
        return _text_from_rest_response(response.json())


def get_gemini_client() -> GeminiClient:
    return GeminiClient()
