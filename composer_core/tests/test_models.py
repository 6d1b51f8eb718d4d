from datetime import datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from composer_core.errors import InvalidMessageShape
from composer_core.images import decode_data_url, encode_data_url
from composer_core.messages import (
    AssistantMessage,
    ComposerMessage,
    ImageAttachment,
    ToolMessage,
    UserMessage,
)
from composer_core.raw import AgentOutput, ControlMessage, HumanInput, RawMessage, ToolResult
from composer_core.state import ConversationState, SessionRecord


class TestCanonicalMessages:
    """Test canonical message models."""

    def test_user_message_text(self) -> None:
        """UserMessage with text needs no image."""
        msg = UserMessage(id="u1", text="Hello")

        assert msg.role == "user"
        assert msg.image is None

    def test_user_message_image_only(self, png_bytes: bytes) -> None:
        """UserMessage may have empty text when an image is attached."""
        msg = UserMessage(id="u1", image=ImageAttachment(data=png_bytes, mime_type="image/png"))

        assert msg.text == ""
        assert msg.image.data == png_bytes

    def test_user_message_requires_text_or_image(self) -> None:
        """UserMessage with neither text nor image is rejected."""
        with pytest.raises(ValidationError):
            UserMessage(id="u1", text="")

    def test_tool_message_unknown_phase(self) -> None:
        """An unrecognized phase fails construction."""
        with pytest.raises(ValidationError):
            ToolMessage(id="a1", tool_name="search", tool_call_id="tc1", phase="running")

    def test_tool_message_start_rejects_result(self) -> None:
        """A start-phase tool message cannot carry a result."""
        with pytest.raises(ValidationError):
            ToolMessage(
                id="a1", tool_name="search", tool_call_id="tc1", phase="start", result={"hits": 3}
            )

    def test_tool_message_defaults(self) -> None:
        """ToolMessage defaults to empty arguments and metadata."""
        msg = ToolMessage(id="t1", tool_name="search", tool_call_id="tc1", phase="end")

        assert msg.arguments == {}
        assert msg.metadata == {}
        assert msg.result is None

    def test_messages_are_frozen(self) -> None:
        """Canonical messages cannot be mutated."""
        msg = AssistantMessage(id="a1", text="Hi")

        with pytest.raises(ValidationError):
            msg.text = "changed"

    def test_discriminated_union(self) -> None:
        """The role field selects the variant when parsing."""
        adapter = TypeAdapter(ComposerMessage)

        msg = adapter.validate_python(
            {"role": "tool", "id": "t1", "tool_name": "read", "tool_call_id": "c1", "phase": "end"}
        )

        assert isinstance(msg, ToolMessage)
        assert isinstance(adapter.validate_python({"role": "assistant", "id": "a", "text": "x"}), AssistantMessage)


class TestImages:
    """Test the data URL codec."""

    def test_round_trip(self, png_bytes: bytes) -> None:
        """Encoding then decoding reproduces bytes and MIME type exactly."""
        image = decode_data_url(encode_data_url(png_bytes, "image/png"))

        assert image.data == png_bytes
        assert image.mime_type == "image/png"

    def test_decode_then_encode_is_identical(self) -> None:
        """Decoding then re-encoding reproduces the original URL."""
        url = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ=="

        assert decode_data_url(url).to_data_url() == url

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/cat.png",
            "data:image/png,rawpayload",
            "data:;base64,AAAA",
            "data:image/png;base64,not*base64",
        ],
    )
    def test_rejects_malformed_urls(self, url: str) -> None:
        """Anything but a base64 data URL is an input-shape violation."""
        with pytest.raises(InvalidMessageShape):
            decode_data_url(url)

    def test_attachment_json_round_trip(self, png_bytes: bytes) -> None:
        """Binary data survives JSON serialization as base64."""
        image = ImageAttachment(data=png_bytes, mime_type="image/png")

        restored = ImageAttachment.model_validate_json(image.model_dump_json())

        assert restored == image


class TestRawMessages:
    """Test the raw message union."""

    def test_kind_discriminator(self) -> None:
        """The kind field selects the raw variant."""
        adapter = TypeAdapter(RawMessage)

        assert isinstance(adapter.validate_python({"kind": "human", "id": "h1"}), HumanInput)
        assert isinstance(adapter.validate_python({"kind": "ai", "id": "a1"}), AgentOutput)
        assert isinstance(
            adapter.validate_python(
                {"kind": "tool", "id": "t1", "name": "search", "tool_call_id": "tc1"}
            ),
            ToolResult,
        )
        assert isinstance(adapter.validate_python({"kind": "control", "type": "system"}), ControlMessage)

    def test_human_input_not_transient_by_default(self) -> None:
        """Transient must be set explicitly."""
        assert HumanInput(id="h1").transient is False


class TestState:
    """Test session and snapshot models."""

    def test_session_record_defaults(self) -> None:
        """SessionRecord fills created_at and empty auxiliary state."""
        record = SessionRecord(thread_id="t1")

        assert isinstance(record.created_at, datetime)
        assert record.files == []
        assert record.command is None
        assert record.parent_thread_id is None

    def test_conversation_state_json_round_trip(self, png_bytes: bytes) -> None:
        """A snapshot with every message kind survives JSON."""
        state = ConversationState(
            thread_id="t1",
            messages=(
                UserMessage(
                    id="u1", text="look", image=ImageAttachment(data=png_bytes, mime_type="image/png")
                ),
                AssistantMessage(id="a1", text="ok"),
                ToolMessage(
                    id="a1", tool_name="search", tool_call_id="tc1", phase="start", arguments={"q": "x"}
                ),
                ToolMessage(id="t1", tool_name="search", tool_call_id="tc1", phase="end", result=[1, 2]),
            ),
            title="Look",
            files=("src/app.py",),
        )

        restored = ConversationState.model_validate_json(state.model_dump_json())

        assert restored == state
        assert restored.messages[0].image.data == png_bytes
