"""Enums shared by the registry, the capability model and the invocation surface."""

from __future__ import annotations

from enum import Enum


class Feature(str, Enum):
    """
    Closed set of generative features used for routing.

    Adding a member is a runtime version bump; the capabilities within a
    feature stay open.
    """

    text_generation = "text-generation"
    image_generation = "image-generation"
    text_to_speech = "text-to-speech"
    speech_generation = "speech-generation"
    music_generation = "music-generation"
    video_generation = "video-generation"
    embedding = "embedding"


class ProviderType(str, Enum):
    """Where a provider's models run."""

    cloud = "cloud"  # Hosted vendor API.
    server = "server"  # Self-hosted inference server.
    client = "client"  # In-process / on-device runtime.


class Role(str, Enum):
    """Author of a message."""

    user = "user"
    model = "model"
    system = "system"


class FinishReason(str, Enum):
    """Why a candidate stopped generating."""

    stop = "stop"
    length = "length"
    content_filter = "content-filter"
    tool_calls = "tool-calls"  # Caller must answer with function-response parts.
    error = "error"


class OperationState(str, Enum):
    """Lifecycle state of a long-running operation."""

    starting = "starting"
    processing = "processing"
    succeeded = "succeeded"
    failed = "failed"
    canceled = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({OperationState.succeeded, OperationState.failed, OperationState.canceled})


class InvocationShape(str, Enum):
    """How a model delivers its output."""

    sync = "sync"
    streaming = "streaming"
    operation = "operation"


class CapabilityKind(str, Enum):
    """How a capability's supported values are described."""

    flag = "flag"  # Boolean: supported or not.
    choice = "choice"  # Enumerated set of allowed values.
    range = "range"  # Numeric interval.
    open = "open"  # Free-form; checked by an optional predicate.


class CapabilitySupport(str, Enum):
    """Tri-state answer to "is this capability supported"."""

    unsupported = "unsupported"
    enumerated = "enumerated"  # Supported, and the allowed values can be listed.
    open = "open"  # Supported, but the allowed values cannot be enumerated.
