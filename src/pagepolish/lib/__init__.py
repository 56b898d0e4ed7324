"""Generative service client and provider configuration."""

from .agent import PatchAgent, PatchResponse, strip_code_fences
from .providers import ProviderConfig, get_model_instance

__all__ = [
    "PatchAgent",
    "PatchResponse",
    "strip_code_fences",
    "ProviderConfig",
    "get_model_instance",
]
