"""HTTP client for the hosted translation and analysis functions."""

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from ..config.models import TranslationSettings
from ..exceptions import TranslationServiceError
from ..interfaces.translation import ITranslationService, TranslationRequest


logger = logging.getLogger(__name__)

TRANSLATE_FUNCTION = "glocal-ai-tm-translate"
ANALYZE_FUNCTION = "glocal-ai-analyze"

_STATUS_MESSAGES = {
    402: "Translation credits are exhausted. Add credits to the AI workspace.",
    429: "Translation rate limit exceeded. Please try again later.",
}


class HttpTranslationService(ITranslationService):
    """
    Calls the hosted ``glocal-ai-tm-translate`` and ``glocal-ai-analyze``
    functions.

    Responses are returned as decoded JSON mappings; the leverage engine
    validates them.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("Translation service URL is not configured")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: TranslationSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HttpTranslationService":
        return cls(
            base_url=settings.service_url,
            api_key=settings.api_key,
            timeout_seconds=settings.timeout_seconds,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, function: str, body: Mapping[str, Any]) -> Any:
        url = f"{self.base_url}/{function}"
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds, transport=self._transport
        ) as client:
            response = await client.post(url, json=dict(body), headers=self._headers())
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                message = _STATUS_MESSAGES.get(status) or self._error_text(e.response)
                logger.warning(f"{function} returned HTTP {status}: {message}")
                raise TranslationServiceError(
                    message=message,
                    details={"function": function},
                    status_code=status,
                ) from e
            return response.json()

    @staticmethod
    def _error_text(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return f"HTTP {response.status_code}"

    async def translate(self, request: TranslationRequest) -> Dict[str, Any]:
        data = await self._post(TRANSLATE_FUNCTION, request.to_payload())
        if not isinstance(data, dict):
            raise TranslationServiceError(
                message="Translation service returned an unexpected response",
                details={"function": TRANSLATE_FUNCTION},
            )
        return data

    async def analyze(
        self,
        source_text: str,
        translated_text: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        context = dict(context or {})
        body = {
            "text": f"Source: {source_text}\n\nTranslation: {translated_text}",
            "analysisType": "tm_breakdown",
            "targetMarket": context.pop("targetMarket", None),
            "context": context,
        }
        data = await self._post(ANALYZE_FUNCTION, body)
        return data if isinstance(data, dict) else None
