import base64
from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.logger import get_logger

GEMINI_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "gemini-2.5-flash-image:generateContent"
)

logger = get_logger(__name__)


class GenerationError(Exception):
    def __init__(self, message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload


@dataclass
class SourceImage:
    data: str
    mime_type: str = "image/jpeg"

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: Optional[str]) -> "SourceImage":
        return cls(base64.b64encode(raw).decode("ascii"), mime_type or "image/jpeg")


@dataclass
class GenerationResult:
    image_base64: Optional[str] = None
    text: Optional[str] = None


async def fetch_image(url: str, timeout: float = 30, transport=None) -> SourceImage:
    try:
        async with httpx.AsyncClient(follow_redirects=True, transport=transport) as client:
            response = await client.get(url, timeout=timeout)
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("image_fetch_failed", url=url, error=str(e))
        raise GenerationError("Failed to process image URL.")

    mime_type = response.headers.get("content-type") or "image/jpeg"
    return SourceImage.from_bytes(response.content, mime_type)


class GeminiClient:
    def __init__(self, api_key: Optional[str], url: str = GEMINI_URL, timeout: float = 120, transport=None):
        self._api_key = api_key
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def generate(self, prompt: str, image: Optional[SourceImage] = None) -> GenerationResult:
        """Generate a new image from ``prompt``, or edit ``image`` with it.

        Raises GenerationError when the model returns no candidate or a
        candidate with neither an image nor text part.
        """
        if not self._api_key:
            raise GenerationError("GEMINI_API_KEY is not set")

        parts = []
        if image:
            parts.append({"inlineData": {"data": image.data, "mimeType": image.mime_type}})
        parts.append({"text": prompt})

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                self._url,
                json={"contents": [{"parts": parts}]},
                headers={"x-goog-api-key": self._api_key, "Content-Type": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            body = response.json()

        candidates = body.get("candidates") or []
        if not candidates:
            raise GenerationError("No candidates returned")

        candidate = candidates[0]
        candidate_parts = (candidate.get("content") or {}).get("parts") or []

        image_part = next(
            (p for p in candidate_parts if (p.get("inlineData") or {}).get("data")),
            None,
        )
        if image_part:
            return GenerationResult(image_base64=image_part["inlineData"]["data"])

        text_part = next((p for p in candidate_parts if p.get("text")), None)
        if text_part:
            return GenerationResult(text=text_part["text"])

        raise GenerationError("No image found in Gemini response", payload=candidate)
