"""Messages and message parts.

Both files and parts are tagged unions: every consumer dispatches on the
discriminant (``File.kind`` / ``MessagePart.type``) instead of on Python
classes, and each variant carries exactly its own payload.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
import os
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.errors import InvalidPromptError
from .enums import Role

# =====================================================================
# Files
# =====================================================================


class InlineFile(BaseModel):
    """File content carried inside the message as base64."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["inline"] = "inline"
    mime_type: str = Field(..., min_length=1, description="IANA media type")
    data: str = Field(..., description="Base64-encoded file content")

    @field_validator("data")
    @classmethod
    def _check_base64(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("data must be valid base64") from exc
        return value

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> "InlineFile":
        return cls(mime_type=mime_type, data=base64.b64encode(data).decode("ascii"))

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class RemoteFile(BaseModel):
    """File referenced by URI (https, gs, provider file id...)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["remote"] = "remote"
    uri: str = Field(..., min_length=1, description="Location the provider can fetch")
    mime_type: Optional[str] = Field(None, description="IANA media type, if known")


class LocalFile(BaseModel):
    """File on the local filesystem; inlined before it reaches a provider."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["local"] = "local"
    path: str = Field(..., min_length=1, description="Filesystem path")
    mime_type: Optional[str] = Field(None, description="IANA media type; guessed from the suffix when omitted")

    def to_inline(self, max_bytes: int) -> InlineFile:
        """Read the file into an :class:`InlineFile`.

        Raises:
            InvalidPromptError: If the file is missing, too large, or its type cannot be determined.
        """
        path = Path(self.path)
        try:
            size = os.stat(path).st_size
        except OSError as exc:
            raise InvalidPromptError(f"cannot read local file '{self.path}': {exc.strerror}") from exc
        if size > max_bytes:
            raise InvalidPromptError(
                f"local file '{self.path}' too large to inline ({size} > {max_bytes} bytes); use a remote file instead"
            )
        mime_type = self.mime_type or mimetypes.guess_type(path.name)[0]
        if mime_type is None:
            raise InvalidPromptError(f"cannot determine mime type of local file '{self.path}'")
        return InlineFile.from_bytes(path.read_bytes(), mime_type)


File = Annotated[Union[InlineFile, RemoteFile, LocalFile], Field(discriminator="kind")]

# =====================================================================
# Parts
# =====================================================================


class FunctionCall(BaseModel):
    """A model's request to call a caller-side function."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(None, description="Call id echoed back by the matching response")
    name: str = Field(..., min_length=1, description="Function name")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="JSON arguments")


class FunctionResponse(BaseModel):
    """The caller's answer to a :class:`FunctionCall`."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(None, description="Id of the call being answered")
    name: str = Field(..., min_length=1, description="Function name")
    response: Dict[str, Any] = Field(default_factory=dict, description="JSON result")


class TextPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class InlineFilePart(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["inline-file"] = "inline-file"
    file: InlineFile


class RemoteFilePart(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["remote-file"] = "remote-file"
    file: RemoteFile


class FunctionCallPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["function-call"] = "function-call"
    function_call: FunctionCall


class FunctionResponsePart(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["function-response"] = "function-response"
    function_response: FunctionResponse


MessagePart = Annotated[
    Union[TextPart, InlineFilePart, RemoteFilePart, FunctionCallPart, FunctionResponsePart],
    Field(discriminator="type"),
]


def file_part(file: Union[InlineFile, RemoteFile, LocalFile], *, max_bytes: Optional[int] = None) -> MessagePart:
    """Build the part carrying ``file``; local files are inlined."""
    if file.kind == "inline":
        return InlineFilePart(file=file)
    if file.kind == "remote":
        return RemoteFilePart(file=file)
    if file.kind == "local":
        if max_bytes is None:
            from ..core.config import settings

            max_bytes = settings.local_file_max_bytes
        return InlineFilePart(file=file.to_inline(max_bytes))
    raise InvalidPromptError(f"unknown file kind: {file.kind!r}")


# =====================================================================
# Messages
# =====================================================================


class Message(BaseModel):
    """Role-tagged, ordered, non-empty sequence of parts.

    Attributes:
        role: Author of the message
        parts: Ordered content; at least one part
    """

    model_config = ConfigDict(frozen=True)

    role: Role = Field(..., description="Author of the message")
    parts: List[MessagePart] = Field(..., min_length=1, description="Ordered message content")

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role=Role.user, parts=[TextPart(text=text)])

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role=Role.system, parts=[TextPart(text=text)])

    @classmethod
    def model(cls, text: str) -> "Message":
        return cls(role=Role.model, parts=[TextPart(text=text)])

    @classmethod
    def function_responses(cls, *responses: FunctionResponse) -> "Message":
        return cls(role=Role.user, parts=[FunctionResponsePart(function_response=r) for r in responses])

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(part.text for part in self.parts if part.type == "text")

    @property
    def function_calls(self) -> List[FunctionCall]:
        return [part.function_call for part in self.parts if part.type == "function-call"]

    @property
    def function_response_parts(self) -> List[FunctionResponse]:
        return [part.function_response for part in self.parts if part.type == "function-response"]
