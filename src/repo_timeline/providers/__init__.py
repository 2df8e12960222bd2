"""Timeline providers and the provider registry."""

from .base import ProviderCapabilities, ProviderConfig, ProviderContext, TimelineProvider
from .git_local import GitLocalProvider
from .registry import PROVIDER_TYPES, ProviderHealth, ProviderRegistry, create_provider

__all__ = [
    "PROVIDER_TYPES",
    "GitLocalProvider",
    "ProviderCapabilities",
    "ProviderConfig",
    "ProviderContext",
    "ProviderHealth",
    "ProviderRegistry",
    "TimelineProvider",
    "create_provider",
]
