"""LLM client setup and inference — wraps the openai SDK.

Talks to a locally hosted, OpenAI-compatible inference server (LM Studio,
Ollama, llama.cpp server, vLLM).  The ``create_client`` factory resolves the
placeholder credential and builds an ``LMStudioClient`` from ``Config``.

The public interface is ``LMStudioClient.complete(prompt)`` returning the
completion text, so the pipeline and its test stubs share one tiny contract.
Transport failures surface as ``ModelUnavailable``; error responses and empty
completions surface as ``ModelError``.  No call is retried.
"""

import logging
import os
import time

import openai as _openai

from pdfsummary.models import Config, ModelError, ModelUnavailable

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Client wrapper
# ---------------------------------------------------------------------------


class LMStudioClient:
    """OpenAI-compatible client for a local inference server.

    Wraps ``openai.OpenAI`` so that the model name and sampling settings are
    stored at construction time and call sites use ``client.complete(prompt)``.

    Attributes:
        model:       The model identifier passed to every completion request.
        base_url:    Inference server address, kept for log messages.
        temperature: Sampling temperature (0.0 for reproducible summaries).
    """

    def __init__(
        self,
        model: str,
        base_url: str,
        api_key: str = "lm-studio",
        temperature: float = 0.0,
        timeout_s: int = 120,
        max_output_tokens: int | None = None,
    ) -> None:
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.timeout_s = timeout_s
        self.max_output_tokens = max_output_tokens
        # The SDK retries twice by default; failures here are terminal.
        self._client = _openai.OpenAI(
            base_url=base_url,
            api_key=api_key,
            max_retries=0,
        )

    def complete(self, prompt: str) -> str:
        """Send one chat completion request and return the model's reply.

        Raises:
            ModelUnavailable: the server could not be reached or timed out.
            ModelError:       the server answered with a non-success status or
                              an empty completion.
        """
        kwargs: dict = dict(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            timeout=self.timeout_s,
        )
        if self.max_output_tokens is not None:
            kwargs["max_tokens"] = self.max_output_tokens

        logger.debug("Calling LLM  model=%s  backend=%s", self.model, self.base_url)
        t0 = time.monotonic()
        try:
            response = self._client.chat.completions.create(**kwargs)
        except _openai.APITimeoutError as exc:
            raise ModelUnavailable(
                f"LLM call to {self.base_url} timed out after {self.timeout_s}s"
            ) from exc
        except _openai.APIConnectionError as exc:
            raise ModelUnavailable(
                f"Cannot reach LLM backend at {self.base_url}: {exc}"
            ) from exc
        except _openai.APIStatusError as exc:
            raise ModelError(
                f"LLM backend returned HTTP {exc.status_code}: {exc.message}"
            ) from exc
        except _openai.OpenAIError as exc:
            raise ModelError(f"LLM call failed: {exc}") from exc

        text = _completion_text(response)
        if not text:
            raise ModelError(f"LLM backend returned an empty completion (model={self.model})")

        logger.debug(
            "Response received (%.1fs, %s chars)",
            time.monotonic() - t0,
            f"{len(text):,}",
        )
        return text


def _completion_text(response) -> str:
    """Return the first choice's message content, or ``""`` when absent."""
    choices = getattr(response, "choices", None)
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str):
        return ""
    return content.strip()


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def create_client(config: Config) -> LMStudioClient:
    """Create a client from configuration, resolving the API key.

    API key resolution order:
        1. ``config.api_key`` (explicit)
        2. ``LLM_API_KEY`` environment variable
        3. ``"lm-studio"`` fallback (local servers ignore the value)
    """
    api_key = config.api_key or os.environ.get("LLM_API_KEY") or "lm-studio"

    return LMStudioClient(
        model=config.model,
        base_url=config.base_url,
        api_key=api_key,
        temperature=config.temperature,
        timeout_s=config.timeout_s,
        max_output_tokens=config.max_output_tokens,
    )
