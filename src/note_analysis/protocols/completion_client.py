"""LLM completion client protocol.

Defines the slice of the Anthropic SDK surface the gateway relies on, so
tests can substitute a fake client without touching the network.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MessagesResource(Protocol):
    """The ``client.messages`` resource of an Anthropic-compatible client."""

    async def create(self, **kwargs: Any) -> Any:
        """Create a message.

        Returns:
            An object with ``content``, ``usage``, ``stop_reason``,
            ``model`` and ``id`` attributes
        """
        ...


@runtime_checkable
class CompletionClient(Protocol):
    """Protocol for Anthropic-compatible async clients.

    ``anthropic.AsyncAnthropic`` satisfies this protocol as-is.
    """

    @property
    def messages(self) -> MessagesResource:
        ...
