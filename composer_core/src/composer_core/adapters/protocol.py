"""Protocol for message adapters."""

from typing import Any, Protocol

from composer_core.raw import RawMessage


class RawMessageAdapter(Protocol):
    """Protocol for converting framework messages to raw agent messages.

    Implementations normalize framework-specific message types (LangChain,
    ...) into the ``RawMessage`` tagged union consumed by the transformer.
    """

    def convert(self, messages: list[Any]) -> list[RawMessage]:
        """Convert a list of framework-specific messages.

        Args:
            messages: List of framework-specific message objects.

        Returns:
            List of raw messages, in the same order.
        """
        ...

    def convert_single(self, message: Any) -> RawMessage:
        """Convert a single framework-specific message.

        Args:
            message: A framework-specific message object.

        Returns:
            Raw message.
        """
        ...
