"""Provider adapters.

The orchestrator only ever talks to :class:`AIAdapter`. Every registered
provider is served by :class:`LiteLLMAdapter`; callers can plug in other
implementations per provider key with :func:`register_adapter_factory`.
"""

import logging
import os
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from .._console import Spinner
from ..core.completion import complete
from ..middleware import LoggingMiddleware, MiddlewareChain, RetryMiddleware
from ..types import ConfigError, CompletionRequest, Messages, RetryConfig
from .registry import PROVIDERS, ParticipantConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class AIAdapter(Protocol):
    """A chat backend that can take a turn in a conversation."""

    def get_name(self) -> str: ...

    def get_model(self) -> str: ...

    async def generate_response(self, messages: Messages) -> str: ...


class LiteLLMAdapter:
    """
    Adapter for any registered provider, backed by litellm.

    Requests flow through a middleware chain (logging, then retry) before
    reaching ``litellm.acompletion``. The API key is read from the provider's
    environment variable at call time, so an adapter can be built before
    ``.env`` files are loaded.

    Args:
        config: Resolved participant configuration
        retry: Retry policy for transient provider errors
        completion_kwargs: Extra kwargs passed through to litellm
            (tests pass ``mock_response`` here)
        show_spinner: Draw a terminal spinner while waiting for a reply
    """

    def __init__(
        self,
        config: ParticipantConfig,
        retry: RetryConfig | None = None,
        completion_kwargs: dict[str, Any] | None = None,
        show_spinner: bool = False,
    ):
        self.config = config
        self._completion_kwargs = dict(completion_kwargs or {})
        self._show_spinner = show_spinner
        self._chain = MiddlewareChain(
            [
                LoggingMiddleware(label=config.display_name),
                RetryMiddleware(retry),
            ],
            complete,
        )

    def get_name(self) -> str:
        return self.config.provider.name

    def get_model(self) -> str:
        return self.config.model.id

    def _api_key(self) -> str | None:
        env_var = self.config.provider.api_key_env_var
        api_key = os.getenv(env_var)
        if not api_key and "mock_response" not in self._completion_kwargs:
            raise ConfigError(f"{env_var} environment variable is not set")
        return api_key

    def build_request(self, messages: Messages) -> CompletionRequest:
        """Build the litellm request for one turn."""
        return CompletionRequest(
            model=self.config.litellm_model,
            messages=list(messages),
            temperature=self.config.model.temperature,
            max_tokens=self.config.model.max_tokens,
            api_key=self._api_key(),
            api_base=self.config.provider.api_base,
            extra_kwargs=dict(self._completion_kwargs),
        )

    async def generate_response(self, messages: Messages) -> str:
        """Send ``messages`` to the provider and return the reply text."""
        request = self.build_request(messages)
        if self._show_spinner:
            async with Spinner(f"{self.config.display_name} is thinking..."):
                response = await self._chain(request)
        else:
            response = await self._chain(request)
        return response.content


AdapterFactory = Callable[[ParticipantConfig], AIAdapter]

ADAPTER_FACTORIES: dict[str, AdapterFactory] = {key: LiteLLMAdapter for key in PROVIDERS}


def register_adapter_factory(provider_key: str, factory: AdapterFactory) -> None:
    """Use ``factory`` to build adapters for ``provider_key``."""
    ADAPTER_FACTORIES[provider_key.upper()] = factory


def create_adapter(config: ParticipantConfig) -> AIAdapter:
    """Instantiate the adapter registered for a participant's provider."""
    factory = ADAPTER_FACTORIES.get(config.provider.key, LiteLLMAdapter)
    logger.debug(
        "Creating %s adapter for %s",
        getattr(factory, "__name__", factory),
        config.display_name,
    )
    return factory(config)
