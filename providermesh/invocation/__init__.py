"""Uniform invocation surface: sync results, streams and long-running operations."""

from .model import GenerativeModel
from .operations import OperationStore
from .prompt import Prompt, check_function_responses, normalize_prompt
from .streaming import GenerationStream

__all__ = [
    "GenerationStream",
    "GenerativeModel",
    "OperationStore",
    "Prompt",
    "check_function_responses",
    "normalize_prompt",
]
