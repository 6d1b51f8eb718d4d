from composer_core.adapters import LangChainAdapter, RawMessageAdapter
from composer_core.bridge import (
    BridgeClient,
    ComposePhase,
    ComposeRequest,
    ComposeResult,
    ComposerHost,
    MemoryTransport,
    StreamTransport,
    Transport,
)
from composer_core.config import ComposerConfig
from composer_core.errors import (
    BridgeRequestError,
    ComposerError,
    InvalidMessageShape,
    MissingSessionContext,
    RequestTimeout,
    ThreadBusy,
    TransportError,
    UnknownCommand,
)
from composer_core.images import decode_data_url, encode_data_url
from composer_core.messages import (
    AssistantMessage,
    ComposerMessage,
    ImageAttachment,
    ToolMessage,
    UserMessage,
)
from composer_core.raw import (
    AgentOutput,
    ControlMessage,
    HumanInput,
    ImageSegment,
    OpaqueSegment,
    RawMessage,
    RawToolCall,
    TextSegment,
    ToolResult,
)
from composer_core.runtime import AgentRuntime, TurnInput
from composer_core.state import ConversationState, SessionRecord
from composer_core.storage import InMemorySessionStore, JsonSessionStore, SessionStore
from composer_core.transformer import map_message, map_messages, transform_state

__all__ = [
    # Config
    "ComposerConfig",
    # Canonical messages
    "ComposerMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "ImageAttachment",
    "decode_data_url",
    "encode_data_url",
    # Raw messages
    "RawMessage",
    "HumanInput",
    "AgentOutput",
    "ToolResult",
    "ControlMessage",
    "RawToolCall",
    "TextSegment",
    "ImageSegment",
    "OpaqueSegment",
    # Adapters
    "RawMessageAdapter",
    "LangChainAdapter",
    # Transformation
    "map_message",
    "map_messages",
    "transform_state",
    "ConversationState",
    "SessionRecord",
    # Collaborators
    "AgentRuntime",
    "TurnInput",
    "SessionStore",
    "InMemorySessionStore",
    "JsonSessionStore",
    # Bridge
    "BridgeClient",
    "ComposerHost",
    "ComposePhase",
    "ComposeRequest",
    "ComposeResult",
    "Transport",
    "MemoryTransport",
    "StreamTransport",
    # Errors
    "ComposerError",
    "InvalidMessageShape",
    "MissingSessionContext",
    "ThreadBusy",
    "UnknownCommand",
    "TransportError",
    "RequestTimeout",
    "BridgeRequestError",
]
