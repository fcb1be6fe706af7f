"""
Oracle implementations for the judgment providers
"""

import asyncio
import hashlib
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type, Union

from .errors import FatalOracleError, OracleError, RateLimited, TransientOracleFailure
from .settings import Settings

logger = logging.getLogger(__name__)

OracleResult = Union[str, Dict[str, Any]]


def _status_code(exc: BaseException) -> Optional[int]:
    """Best-effort HTTP status extraction across provider SDK exceptions"""
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        try:
            status = int(value)
        except (TypeError, ValueError):
            continue
        if 100 <= status < 600:
            return status
    response = getattr(exc, "response", None)
    if response is not None:
        return _status_code(response)
    return None


def _retry_after(exc: BaseException) -> Optional[float]:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def classify_oracle_error(exc: BaseException) -> OracleError:
    """Map a provider exception onto the oracle error taxonomy"""
    if isinstance(exc, OracleError):
        return exc

    status = _status_code(exc)
    message = f"{type(exc).__name__}: {exc}"

    if status == 429:
        return RateLimited(message, retry_after=_retry_after(exc))
    if status is not None and 400 <= status < 500 and status not in (408, 409):
        return FatalOracleError(message)
    # 5xx, timeouts, dropped connections and anything unrecognised
    return TransientOracleFailure(message)


class OracleClient(ABC):
    """Abstract base class for judgment oracles"""

    def __init__(self, name: str, api_key: Optional[str] = None):
        self.name = name
        self.api_key = api_key
        self.is_available = True
        self.total_requests = 0
        self.error_count = 0
        self.rate_limited_count = 0
        self.last_request_time = 0.0

    async def query(self, prompt: str) -> OracleResult:
        """Send a prompt to the oracle; failures raise OracleError subclasses"""
        self.total_requests += 1
        self.last_request_time = time.time()
        try:
            return await self._query(prompt)
        except Exception as e:
            error = classify_oracle_error(e)
            self.error_count += 1
            if isinstance(error, RateLimited):
                self.rate_limited_count += 1
            logger.warning(f"{self.name} oracle error: {error}")
            if error is e:
                raise
            raise error from e

    @abstractmethod
    async def _query(self, prompt: str) -> OracleResult:
        """Provider-specific call"""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the oracle is usable"""

    def get_stats(self) -> Dict[str, Any]:
        """Get oracle statistics"""
        return {
            "name": self.name,
            "is_available": self.is_available,
            "total_requests": self.total_requests,
            "error_count": self.error_count,
            "rate_limited_count": self.rate_limited_count,
            "last_request_time": self.last_request_time,
        }


class MockOracle(OracleClient):
    """Deterministic offline oracle, used when real LLMs are disabled"""

    def __init__(self, api_key: Optional[str] = None, latency: float = 0.0, **kwargs):
        super().__init__("mock", api_key)
        self.latency = latency

    async def _query(self, prompt: str) -> OracleResult:
        if self.latency:
            await asyncio.sleep(self.latency)

        if "Proposition list:" in prompt:
            return self._mock_split(prompt)
        if "Child-friendly answer" in prompt:
            return self._mock_answer(prompt)

        digest = hashlib.sha256(prompt.encode("utf-8")).digest()
        return {
            "verdict": digest[0] % 4 != 0,
            "confidence": 60 + digest[1] % 40,
            "reasoning": "Mock oracle verdict derived from the prompt digest.",
        }

    @staticmethod
    def _extract(prompt: str, label: str, terminator: str) -> str:
        start = prompt.rfind(label)
        if start < 0:
            return ""
        body = prompt[start + len(label):]
        end = body.find(terminator)
        return (body[:end] if end >= 0 else body).strip()

    def _mock_split(self, prompt: str) -> str:
        """One proposition per sentence of the input text"""
        text = self._extract(prompt, "Text:", "Proposition list:")
        sentences = [s.strip() for s in re.split(r"(?<=[.!?])\s+", text) if s.strip()]
        return "\n".join(f"- {sentence}" for sentence in sentences)

    def _mock_answer(self, prompt: str) -> str:
        question = self._extract(prompt, "Question:", "Child-friendly answer")
        return (
            f"That's a great question! \"{question}\" is a bit like a puzzle: "
            "scientists looked very carefully and found the answer step by step."
        )

    async def health_check(self) -> bool:
        return True


class GeminiOracle(OracleClient):
    """Google Gemini oracle"""

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash-lite",
                 temperature: float = 0.1, max_tokens: int = 200):
        super().__init__("google", api_key)
        self.model_name = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = None

    def _get_client(self):
        """Lazy initialization of the Gemini model"""
        if self.client is None:
            try:
                import google.generativeai as genai
            except ImportError as e:
                raise FatalOracleError("google-generativeai package not installed") from e
            genai.configure(api_key=self.api_key)
            self.client = genai.GenerativeModel(
                self.model_name,
                generation_config={
                    "temperature": self.temperature,
                    "max_output_tokens": self.max_tokens,
                },
            )
        return self.client

    async def _query(self, prompt: str) -> OracleResult:
        model = self._get_client()
        response = await asyncio.get_running_loop().run_in_executor(
            None, model.generate_content, prompt
        )
        return response.text

    async def health_check(self) -> bool:
        try:
            self._get_client()
            self.is_available = True
        except Exception as e:
            logger.error(f"Gemini health check failed: {e}")
            self.is_available = False
        return self.is_available


class OpenAIOracle(OracleClient):
    """OpenAI chat-completions oracle"""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini",
                 temperature: float = 0.1, max_tokens: int = 200):
        super().__init__("openai", api_key)
        self.model_name = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = None

    def _get_client(self):
        if self.client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as e:
                raise FatalOracleError("openai package not installed") from e
            self.client = AsyncOpenAI(api_key=self.api_key)
        return self.client

    async def _query(self, prompt: str) -> OracleResult:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self.model_name,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        return response.choices[0].message.content or ""

    async def health_check(self) -> bool:
        try:
            self._get_client()
            self.is_available = True
        except Exception as e:
            logger.error(f"OpenAI health check failed: {e}")
            self.is_available = False
        return self.is_available


class AnthropicOracle(OracleClient):
    """Anthropic Claude oracle"""

    def __init__(self, api_key: str, model: str = "claude-3-5-haiku-latest",
                 temperature: float = 0.1, max_tokens: int = 200):
        super().__init__("anthropic", api_key)
        self.model_name = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = None

    def _get_client(self):
        if self.client is None:
            try:
                from anthropic import AsyncAnthropic
            except ImportError as e:
                raise FatalOracleError("anthropic package not installed") from e
            self.client = AsyncAnthropic(api_key=self.api_key)
        return self.client

    async def _query(self, prompt: str) -> OracleResult:
        client = self._get_client()
        response = await client.messages.create(
            model=self.model_name,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.content[0].text

    async def health_check(self) -> bool:
        try:
            self._get_client()
            self.is_available = True
        except Exception as e:
            logger.error(f"Anthropic health check failed: {e}")
            self.is_available = False
        return self.is_available


ORACLE_REGISTRY: Dict[str, Type[OracleClient]] = {
    "mock": MockOracle,
    "google": GeminiOracle,
    "openai": OpenAIOracle,
    "anthropic": AnthropicOracle,
}


def create_oracle(settings: Settings, api_key: Optional[str] = None) -> OracleClient:
    """Build the configured oracle, falling back to the mock oracle"""
    provider = settings.oracle_provider.lower()
    if not settings.use_real_llm or provider == "mock":
        logger.info("Using mock oracle")
        return MockOracle()

    oracle_class = ORACLE_REGISTRY.get(provider)
    if oracle_class is None:
        raise ValueError(f"Unknown oracle provider: {provider}")
    if not api_key:
        logger.warning(f"No API key found for {provider}, using mock oracle")
        return MockOracle()

    kwargs = {
        "temperature": settings.oracle_temperature,
        "max_tokens": settings.oracle_max_tokens,
    }
    if settings.oracle_model:
        kwargs["model"] = settings.oracle_model
    oracle = oracle_class(api_key, **kwargs)
    logger.info(f"Using {provider} oracle ({oracle.model_name})")
    return oracle
