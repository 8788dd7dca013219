"""
Completion backend interface for Conduit.

This module is the only place that *directly* calls an LLM.  Everything else (agent loop, tools,
knowledge retrieval) stays model-agnostic: the loop only needs ``complete(prompt) -> text``.

We support three services out of the box:

1. **OpenAI / Anthropic** via their SDKs (requires env keys).
2. **Hugging Face Text-Generation-Inference (TGI)** for self-hosted models.

Additional providers can be added by subclassing :class:`BaseBackend` and registering via
:func:`register_backend`.
"""

import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Callable,
    Type,
)

import httpx

from conduit.config import settings
from conduit.core.errors import BackendInvocationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_BACKEND_REGISTRY: dict[str, Type["BaseBackend"]] = {}


def register_backend(name: str) -> Callable:
    """Decorator to register a backend class under *name*."""

    def wrapper(cls: Type["BaseBackend"]) -> Type["BaseBackend"]:
        _BACKEND_REGISTRY[name] = cls
        return cls

    return wrapper


def load_backend(name: str | None = None) -> "BaseBackend":
    """
    Factory that returns an instantiated backend.

    Fallback order:
    1. *name* arg
    2. ``settings.BACKEND`` env option
    """

    target = name or settings.BACKEND
    cls = _BACKEND_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Backend '{target}' is not registered.")
    return cls()


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseBackend(ABC):
    """Abstract text -> text completion service."""

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """
        Return the model's continuation of *prompt*.

        Raises
        ------
        BackendInvocationError
            If the service cannot be reached or returns no text.
        """


# ---------------------------------------------------------------------------
# Concrete backends
# ---------------------------------------------------------------------------
@register_backend("tgi")
class TGIBackend(BaseBackend):
    """TGI-based backend with an httpx client."""

    def __init__(
        self,
        endpoint: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.endpoint = endpoint or settings.TGI_ENDPOINT
        self.timeout = timeout if timeout is not None else settings.BACKEND_TIMEOUT
        self._transport = transport

    def complete(self, prompt: str) -> str:
        payload = {
            "inputs": prompt,
            "parameters": {"max_new_tokens": 1024, "temperature": 0.2, "stop": ["User:", "</s>"]},
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(self.endpoint, json=payload)
                resp.raise_for_status()
                content = resp.json()["generated_text"]
        except httpx.HTTPError as e:
            logger.error("TGI request error: %s", str(e))
            raise BackendInvocationError(f"Error calling TGI endpoint: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Malformed TGI response: %s", str(e))
            raise BackendInvocationError(f"Error processing TGI response: {e}") from e

        logger.debug("TGI response: %s", content)
        return content


@register_backend("openai")
class OpenAIBackend(BaseBackend):
    """OpenAI chat-completions backend; the whole transcript is sent as one user message."""

    def complete(self, prompt: str) -> str:
        import openai  # pylint: disable=import-outside-toplevel

        try:
            client = openai.OpenAI(
                api_key=settings.OPENAI_API_KEY, timeout=settings.BACKEND_TIMEOUT
            )
            resp = client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.2,
            )
            content = resp.choices[0].message.content
        except Exception as e:  # pylint: disable=broad-except
            logger.error("OpenAI backend error: %s", str(e))
            raise BackendInvocationError(f"Error calling OpenAI: {e}") from e

        if not content:
            logger.error("OpenAI backend returned empty response")
            raise BackendInvocationError("Empty response from OpenAI")
        logger.debug("OpenAI response: %s", content)
        return content


@register_backend("anthropic")
class AnthropicBackend(BaseBackend):
    """Anthropic Claude backend."""

    def complete(self, prompt: str) -> str:
        try:
            import anthropic  # pylint: disable=import-outside-toplevel
        except ImportError as e:
            logger.error("Anthropic SDK not installed")
            raise BackendInvocationError(
                "Anthropic SDK not installed. Run 'pip install anthropic'"
            ) from e

        try:
            client = anthropic.Anthropic(
                api_key=settings.ANTHROPIC_API_KEY, timeout=settings.BACKEND_TIMEOUT
            )
            response = client.messages.create(
                model=settings.ANTHROPIC_MODEL,
                max_tokens=8192,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.2,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Anthropic backend error: %s", str(e))
            raise BackendInvocationError(f"Error calling Anthropic: {e}") from e

        # Only text blocks carry the reply
        content = "".join(block.text for block in response.content if block.type == "text")
        if not content:
            logger.error("Anthropic backend returned empty response")
            raise BackendInvocationError("Empty response from Anthropic")
        logger.debug("Anthropic response: %s", content)
        return content
