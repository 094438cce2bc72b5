# server/providers.py
# ---------------------------------------------------------
# HTTP clients for the remote model providers:
#   - GeminiClient    (generativelanguage.googleapis.com)
#   - HerokuAIClient  (OpenAI-compatible /v1/chat/completions)
#
# Both expose:
#   generate(prompt, json_mode=False) -> str
#   chat(messages) -> ChatResult
# and raise ProviderError for anything that is not a usable reply.
# ---------------------------------------------------------

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx
from loguru import logger

from .config import Settings

TUTOR_SYSTEM_PROMPT = (
    "You are Study Buddy AI Assistant, a patient, encouraging study tutor. "
    "Provide step-by-step explanations, cite sources when provided, and format "
    "math clearly (LaTeX syntax allowed)."
)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class ProviderError(Exception):
    """Raised when a provider call fails or returns nothing usable."""

    def __init__(
        self, provider: str, message: str, status_code: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


@dataclass
class ChatResult:
    content: str
    provider: str
    usage: Optional[Dict[str, Any]] = None


def _msg_get(m: Any, key: str) -> str:
    if isinstance(m, dict):
        return m.get(key) or ""
    return getattr(m, key, "") or ""


class _HTTPProvider:
    name = "provider"

    def __init__(
        self, timeout_s: float = 30.0, http_client: Optional[httpx.Client] = None
    ) -> None:
        self.timeout_s = timeout_s
        self._http_client = http_client

    def _post(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        try:
            if self._http_client is not None:
                resp = self._http_client.post(
                    url, json=payload, headers=headers, params=params,
                    timeout=self.timeout_s,
                )
            else:
                with httpx.Client(timeout=self.timeout_s) as client:
                    resp = client.post(url, json=payload, headers=headers, params=params)
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, f"{self.name} request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"{self.name} request failed: {e}") from e
        except httpx.InvalidURL as e:
            raise ProviderError(self.name, f"{self.name} has an invalid URL: {e}") from e

        if resp.status_code < 200 or resp.status_code >= 300:
            raise ProviderError(
                self.name,
                f"{self.name} error: status={resp.status_code}, body={resp.text}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(self.name, f"{self.name} returned non-JSON body") from e
        if not isinstance(data, dict):
            raise ProviderError(self.name, f"{self.name} returned unexpected body")
        return data


class GeminiClient(_HTTPProvider):
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = GEMINI_API_BASE,
        timeout_s: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(timeout_s=timeout_s, http_client=http_client)
        if not api_key:
            raise ProviderError(self.name, "GEMINI_API_KEY is not set in the environment.")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _generate_content(self, body: Dict[str, Any]) -> str:
        data = self._post(self.url, body, params={"key": self.api_key})
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        try:
            parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
            return "\n".join(p.get("text") or "" for p in parts if isinstance(p, dict))
        except (AttributeError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.name, f"unexpected {self.name} response shape") from e

    def generate(self, prompt: str, json_mode: bool = False) -> str:
        body: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if json_mode:
            body["generationConfig"] = {"response_mime_type": "application/json"}
        return self._generate_content(body)

    def chat(self, messages: Sequence[Any]) -> ChatResult:
        # Gemini has no system role here; the tutor text goes first as a user turn
        contents = [{"role": "user", "parts": [{"text": TUTOR_SYSTEM_PROMPT}]}]
        for m in messages:
            role = "model" if _msg_get(m, "role") == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": _msg_get(m, "content")}]})
        text = self._generate_content({"contents": contents})
        return ChatResult(content=text, provider=self.name)


class HerokuAIClient(_HTTPProvider):
    name = "heroku-ai"

    def __init__(
        self,
        url: str,
        key: str,
        model_id: str,
        timeout_s: float = 30.0,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__(timeout_s=timeout_s, http_client=http_client)
        if not (url and key and model_id):
            raise ProviderError(
                self.name,
                "Heroku AI not configured. Set HEROKU_INFERENCE_URL, "
                "HEROKU_INFERENCE_KEY, and HEROKU_INFERENCE_MODEL_ID",
            )
        self.base_url = url.rstrip("/")
        self.key = key
        self.model_id = model_id
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _completions(self, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }
        return self._post(f"{self.base_url}/v1/chat/completions", body, headers=headers)

    def _content(self, data: Dict[str, Any]) -> str:
        choices = data.get("choices") or []
        if not choices:
            return ""
        try:
            content = ((choices[0] or {}).get("message") or {}).get("content") or ""
        except (AttributeError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.name, f"unexpected {self.name} response shape") from e
        return content if isinstance(content, str) else str(content)

    def generate(self, prompt: str, json_mode: bool = False) -> str:
        body: Dict[str, Any] = {
            "model": self.model_id,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}
        return self._content(self._completions(body))

    def chat(self, messages: Sequence[Any]) -> ChatResult:
        openai_messages: List[Dict[str, str]] = [
            {"role": "system", "content": TUTOR_SYSTEM_PROMPT}
        ]
        for m in messages:
            role = _msg_get(m, "role")
            if role not in ("assistant", "system"):
                role = "user"
            openai_messages.append({"role": role, "content": _msg_get(m, "content")})

        data = self._completions(
            {
                "model": self.model_id,
                "messages": openai_messages,
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
            }
        )
        return ChatResult(
            content=self._content(data), provider=self.name, usage=data.get("usage")
        )


# -------------------------------------------------------------------
# Selection
# -------------------------------------------------------------------

def gemini_from_settings(settings: Settings) -> Optional[GeminiClient]:
    if not settings.has_gemini:
        return None
    return GeminiClient(
        api_key=settings.gemini_api_key or "",
        model=settings.gemini_model,
        timeout_s=settings.ai_timeout_seconds,
    )


def heroku_from_settings(settings: Settings) -> Optional[HerokuAIClient]:
    if not settings.has_heroku:
        return None
    return HerokuAIClient(
        url=settings.heroku_inference_url or "",
        key=settings.heroku_inference_key or "",
        model_id=settings.heroku_inference_model_id or "",
        timeout_s=settings.ai_timeout_seconds,
    )


def select_provider(settings: Settings, preference: str = "auto"):
    """
    Returns a configured client or None.

    "auto" prefers Heroku AI when all three of its variables are set,
    then Gemini.
    """
    if preference == "gemini":
        return gemini_from_settings(settings)
    if preference == "heroku":
        return heroku_from_settings(settings)
    if preference != "auto":
        raise ValueError(f"unknown provider: {preference}")

    provider = heroku_from_settings(settings) or gemini_from_settings(settings)
    if provider is None:
        logger.debug("[providers] no AI provider configured; deterministic paths only")
    return provider
