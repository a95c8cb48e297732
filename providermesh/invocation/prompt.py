"""Prompt normalization.

Callers may pass a plain string, one :class:`Message`, or a sequence of
messages / strings. Everything is normalized to a non-empty list of messages
before it reaches a provider.

A model message that requested function calls (finish reason ``tool-calls``)
must be followed by a message answering every call with a
``function-response`` part; the conversation cannot continue otherwise.
"""

from __future__ import annotations

from typing import List, Sequence, Union

from ..core.errors import InvalidPromptError
from ..models.enums import Role
from ..models.message import FunctionCall, FunctionResponse, Message

Prompt = Union[str, Message, Sequence[Union[str, Message]]]


def normalize_prompt(prompt: Prompt) -> List[Message]:
    """
    Turn any accepted prompt form into a validated message list.

    Raises:
        InvalidPromptError: If the prompt is empty, of an unsupported type, or leaves
            function calls unanswered.
    """
    if isinstance(prompt, (str, Message)):
        items: Sequence[Union[str, Message]] = [prompt]
    elif isinstance(prompt, Sequence):
        items = prompt
    else:
        raise InvalidPromptError(f"unsupported prompt type: {type(prompt).__name__}")

    messages: List[Message] = []
    for item in items:
        if isinstance(item, Message):
            messages.append(item)
        elif isinstance(item, str):
            if not item:
                raise InvalidPromptError("prompt text must not be empty")
            messages.append(Message.user(item))
        else:
            raise InvalidPromptError(f"unsupported prompt item type: {type(item).__name__}")

    if not messages:
        raise InvalidPromptError("prompt must contain at least one message")

    check_function_responses(messages)
    return messages


def check_function_responses(messages: Sequence[Message]) -> None:
    """Ensure every model function call is answered by the following message."""
    for position, message in enumerate(messages):
        if message.role is not Role.model:
            continue
        calls = message.function_calls
        if not calls:
            continue
        if position + 1 >= len(messages):
            names = ", ".join(call.name for call in calls)
            raise InvalidPromptError(f"function calls awaiting a response: {names}")
        responses = messages[position + 1].function_response_parts
        for call in calls:
            if not any(_answers(response, call) for response in responses):
                raise InvalidPromptError(f"missing function response for call '{call.name}'")


def _answers(response: FunctionResponse, call: FunctionCall) -> bool:
    if call.id is not None and response.id is not None:
        return call.id == response.id
    return call.name == response.name
