"""Unit tests for messages, parts and the file union."""

import pytest
from pydantic import TypeAdapter, ValidationError

from providermesh.core.errors import InvalidPromptError
from providermesh.models.enums import Role
from providermesh.models.message import (
    File,
    FunctionCall,
    FunctionCallPart,
    FunctionResponse,
    InlineFile,
    InlineFilePart,
    LocalFile,
    Message,
    MessagePart,
    RemoteFile,
    RemoteFilePart,
    TextPart,
    file_part,
)


class TestMessage:
    def test_user_message(self):
        message = Message.user("hi")
        assert message.role is Role.user
        assert message.text == "hi"

    def test_parts_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            Message(role=Role.user, parts=[])

    def test_text_concatenates_text_parts_only(self):
        message = Message(
            role=Role.model,
            parts=[
                TextPart(text="a"),
                RemoteFilePart(file=RemoteFile(uri="gs://bucket/cat.png", mime_type="image/png")),
                TextPart(text="b"),
            ],
        )
        assert message.text == "ab"

    def test_function_calls_and_responses(self):
        call = FunctionCall(id="c1", name="lookup", arguments={"q": "x"})
        message = Message(role=Role.model, parts=[FunctionCallPart(function_call=call)])
        assert message.function_calls == [call]

        answer = Message.function_responses(FunctionResponse(id="c1", name="lookup", response={"r": 1}))
        assert answer.role is Role.user
        assert answer.function_response_parts[0].response == {"r": 1}

    def test_parts_parse_by_discriminator(self):
        message = Message.model_validate(
            {
                "role": "user",
                "parts": [
                    {"type": "text", "text": "look"},
                    {"type": "inline-file", "file": {"kind": "inline", "mime_type": "image/png", "data": "AAEC"}},
                ],
            }
        )
        assert isinstance(message.parts[0], TextPart)
        assert isinstance(message.parts[1], InlineFilePart)

    def test_unknown_part_type_is_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(MessagePart).validate_python({"type": "video", "text": "x"})

    def test_part_variant_carries_only_its_payload(self):
        with pytest.raises(ValidationError):
            TypeAdapter(MessagePart).validate_python({"type": "text"})


class TestFiles:
    def test_inline_round_trip(self):
        inline = InlineFile.from_bytes(b"\x00\x01\x02", "application/octet-stream")
        assert inline.to_bytes() == b"\x00\x01\x02"

    def test_inline_rejects_invalid_base64(self):
        with pytest.raises(ValidationError):
            InlineFile(mime_type="image/png", data="not base64!")

    def test_file_union_dispatches_on_kind(self):
        adapter = TypeAdapter(File)
        assert isinstance(adapter.validate_python({"kind": "remote", "uri": "https://x/y.png"}), RemoteFile)
        assert isinstance(adapter.validate_python({"kind": "local", "path": "/tmp/a.png"}), LocalFile)

    def test_local_file_is_inlined(self, tmp_path):
        path = tmp_path / "cat.png"
        path.write_bytes(b"png-bytes")
        part = file_part(LocalFile(path=str(path)), max_bytes=1024)
        assert isinstance(part, InlineFilePart)
        assert part.file.mime_type == "image/png"
        assert part.file.to_bytes() == b"png-bytes"

    def test_local_file_too_large(self, tmp_path):
        path = tmp_path / "big.bin"
        path.write_bytes(b"x" * 10)
        with pytest.raises(InvalidPromptError):
            LocalFile(path=str(path), mime_type="application/octet-stream").to_inline(max_bytes=5)

    def test_local_file_missing(self, tmp_path):
        with pytest.raises(InvalidPromptError):
            LocalFile(path=str(tmp_path / "missing.png")).to_inline(max_bytes=5)

    def test_local_file_unknown_mime_type(self, tmp_path):
        path = tmp_path / "blob.unknownext"
        path.write_bytes(b"x")
        with pytest.raises(InvalidPromptError):
            LocalFile(path=str(path)).to_inline(max_bytes=5)

    def test_remote_file_part(self):
        part = file_part(RemoteFile(uri="https://example.invalid/a.mp3", mime_type="audio/mpeg"))
        assert isinstance(part, RemoteFilePart)
