"""AI completion client: provider transport plus timeout-aware retry."""

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Union

import httpx
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_fixed

from report_engine.errors import GenerationTimeout, UnexpectedError

logger = logging.getLogger(__name__)


@dataclass
class CompletionRequest:
    """One outbound completion call."""

    system_prompt: str
    user_prompt: str
    model: str
    max_tokens: int = 8096
    temperature: float = 0.7
    timeout_seconds: float = 600
    stream: bool = True


@dataclass(frozen=True)
class WholeResponse:
    """Provider returned the full text in one piece."""

    text: str

    def iter_text(self) -> Iterator[str]:
        yield self.text


@dataclass(frozen=True)
class StreamedResponse:
    """Provider returns text chunks as they arrive."""

    chunks: Iterable[str]

    def iter_text(self) -> Iterator[str]:
        yield from self.chunks


CompletionResponse = Union[WholeResponse, StreamedResponse]


class CompletionProvider(Protocol):
    """Anything that can answer a completion request."""

    def chat(self, request: CompletionRequest) -> CompletionResponse:
        ...


def is_timeout_error(exc: BaseException) -> bool:
    """Classify a transport failure as a timeout.

    Providers wrap transport errors inconsistently, so the message is
    checked as well as the type.
    """
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return True
    message = str(exc).lower()
    return "timeout" in message or "timed out" in message


def check_deadline(deadline: float, timeout_seconds: float) -> None:
    """Abandon a call that has run past its overall deadline.

    httpx timeouts only bound each connect, read or write, so a provider that
    keeps trickling data is cut off here instead.
    """
    if time.monotonic() > deadline:
        raise httpx.ReadTimeout(f"AI call exceeded its {timeout_seconds}s deadline")


class OpenRouterProvider:
    """OpenAI-compatible chat completions over HTTP (OpenRouter by default)."""

    def __init__(
        self,
        http_client: httpx.Client,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        site_url: str = "",
        site_name: str = "",
    ):
        """Initialize the provider with a process-wide HTTP client."""
        self.http = http_client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.site_url = site_url
        self.site_name = site_name

    def _build_headers(self) -> Dict[str, str]:
        """Build HTTP headers for OpenRouter."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.site_name:
            headers["X-Title"] = self.site_name
        return headers

    def _build_payload(self, request: CompletionRequest) -> Dict:
        messages: List[Dict[str, str]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.user_prompt})
        return {
            "model": request.model,
            "messages": messages,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "stream": request.stream,
        }

    def chat(self, request: CompletionRequest) -> CompletionResponse:
        """Call the chat completions endpoint."""
        payload = self._build_payload(request)
        timeout = httpx.Timeout(request.timeout_seconds)
        deadline = time.monotonic() + request.timeout_seconds

        if request.stream:
            return StreamedResponse(self._stream(payload, timeout, deadline, request.timeout_seconds))

        body = []
        with self.http.stream(
            "POST",
            f"{self.base_url}/chat/completions",
            headers=self._build_headers(),
            json=payload,
            timeout=timeout,
        ) as response:
            response.raise_for_status()
            for chunk in response.iter_bytes():
                check_deadline(deadline, request.timeout_seconds)
                body.append(chunk)
        result = json.loads(b"".join(body))
        return WholeResponse(result["choices"][0]["message"]["content"] or "")

    def _stream(self, payload: Dict, timeout: httpx.Timeout, deadline: float, timeout_seconds: float) -> Iterator[str]:
        """Yield content deltas from a server-sent event stream."""
        with self.http.stream(
            "POST",
            f"{self.base_url}/chat/completions",
            headers=self._build_headers(),
            json=payload,
            timeout=timeout,
        ) as response:
            response.raise_for_status()
            for line in response.iter_lines():
                check_deadline(deadline, timeout_seconds)
                if not line or not line.startswith("data:"):
                    continue  # keep-alive comments
                data = line[len("data:"):].strip()
                if data == "[DONE]":
                    break
                event = json.loads(data)
                if "error" in event:
                    raise RuntimeError(f"Provider stream error: {event['error']}")
                choices = event.get("choices") or []
                if not choices:
                    continue
                delta = choices[0].get("delta") or {}
                content = delta.get("content")
                if content:
                    yield content


class AIClientAdapter:
    """Issues completions with a deadline and a single retry on timeout."""

    def __init__(
        self,
        provider: CompletionProvider,
        *,
        system_prompt: str,
        simple_model: str,
        complex_model: Optional[str] = None,
        max_tokens: int = 8096,
        temperature: float = 0.7,
        timeout_seconds: float = 600,
        stream: bool = True,
        retry_delay_seconds: float = 2.0,
    ):
        self.provider = provider
        self.system_prompt = system_prompt
        self.simple_model = simple_model
        self.complex_model = complex_model or simple_model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.stream = stream
        self.retry_delay_seconds = retry_delay_seconds

    @staticmethod
    def _hash_text(text: str) -> str:
        """Hash text using SHA256."""
        return hashlib.sha256(text.encode("utf-8", errors="ignore")).hexdigest()

    def model_for(self, complex_report: bool = False) -> str:
        return self.complex_model if complex_report else self.simple_model

    def complete(
        self,
        prompt: str,
        timeout_seconds: Optional[float] = None,
        allow_retry: bool = True,
        complex_report: bool = False,
    ) -> str:
        """
        Run a completion and return the full response text.

        Args:
            prompt: User prompt
            timeout_seconds: Deadline per attempt (defaults to the configured timeout)
            allow_retry: Retry once after a timeout
            complex_report: Use the complex-report model

        Returns:
            Concatenated response text

        Raises:
            GenerationTimeout: If every attempt timed out
            UnexpectedError: On any other provider failure
        """
        request = CompletionRequest(
            system_prompt=self.system_prompt,
            user_prompt=prompt,
            model=self.model_for(complex_report),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout_seconds=timeout_seconds or self.timeout_seconds,
            stream=self.stream,
        )
        max_attempts = 2 if allow_retry else 1

        request_hash = self._hash_text(json.dumps([request.model, request.system_prompt, prompt]))
        logger.info(f"LLM request to {request.model}, hash: {request_hash[:16]}")

        retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_fixed(self.retry_delay_seconds),
            retry=retry_if_exception(is_timeout_error),
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    text = self._attempt(request, attempt.retry_state.attempt_number, max_attempts)
        except Exception as e:
            if is_timeout_error(e):
                logger.error(f"AI API call timed out after {max_attempts} attempt(s): {e}")
                raise GenerationTimeout(str(e)) from e
            logger.error(f"AI API call failed: {e} | Type: {type(e).__name__}")
            raise UnexpectedError(str(e)) from e

        logger.info(f"LLM response hash: {self._hash_text(text)[:16]}")
        return text

    def _attempt(self, request: CompletionRequest, attempt: int, max_attempts: int) -> str:
        logger.info(
            f"Calling AI API (attempt {attempt} of {max_attempts}) "
            f"with {request.timeout_seconds}s timeout"
        )
        start = time.monotonic()
        deadline = start + request.timeout_seconds
        response = self.provider.chat(request)
        check_deadline(deadline, request.timeout_seconds)

        parts = []
        for chunk in response.iter_text():
            check_deadline(deadline, request.timeout_seconds)
            parts.append(chunk)
        text = "".join(parts)

        logger.info(
            f"AI API call successful on attempt {attempt} "
            f"(took {time.monotonic() - start:.2f} seconds, {len(parts)} chunks)"
        )
        return text

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        logger.warning(f"API timeout on attempt {retry_state.attempt_number}, retrying...")
