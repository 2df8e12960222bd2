"""Provider registry: registration, enablement and health of timeline providers.

Built-in provider variants are listed in PROVIDER_TYPES. Adding a new one
requires:
1. Implement TimelineProvider in a module of this package.
2. Add its kind -> class entry to PROVIDER_TYPES below.
``create_provider`` and the CLI pick it up from there.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from ..exceptions import ProviderInitializationError, ProviderNotFoundError
from ..logging_config import get_logger
from .base import ProviderConfig, TimelineProvider
from .git_local import GitLocalProvider

logger = get_logger(__name__)

PROVIDER_TYPES: dict[str, type[TimelineProvider]] = {
    "git-local": GitLocalProvider,
}

# Listener signature: listener(change, provider_id)
# change is one of "registered", "unregistered", "enabled", "disabled",
# "health-changed"
RegistryListener = Callable[[str, str], None]


def create_provider(kind: str, **kwargs) -> TimelineProvider:
    """Instantiate a built-in provider by kind."""
    try:
        provider_cls = PROVIDER_TYPES[kind]
    except KeyError:
        raise ProviderNotFoundError(kind)
    return provider_cls(**kwargs)


@dataclass
class ProviderHealth:
    healthy: bool
    last_check: datetime
    error: Optional[str] = None


class ProviderRegistry:
    """Holds the registered providers and their enablement and health.

    Registration order is preserved and is the order providers are
    consulted in.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._providers: dict[str, TimelineProvider] = {}
        self._configs: dict[str, ProviderConfig] = {}
        self._health: dict[str, ProviderHealth] = {}
        self._listeners: list[RegistryListener] = []

    # -- registration -----------------------------------------------------

    def register(self, provider: TimelineProvider, config: Optional[ProviderConfig] = None) -> None:
        """Validate, initialize and add ``provider``.

        Raises:
            ProviderInitializationError: not a TimelineProvider, missing
                identity, duplicate id, or ``initialize`` raised
        """
        provider_id = self._validate(provider)
        config = config or ProviderConfig()

        with self._lock:
            if provider_id in self._providers:
                raise ProviderInitializationError(provider_id, "a provider with this id is already registered")

        logger.debug(f"Registering provider {provider_id} ({provider.name} {provider.version})")
        try:
            provider.initialize(config)
        except Exception as e:
            raise ProviderInitializationError(provider_id, str(e)) from e

        with self._lock:
            self._providers[provider_id] = provider
            self._configs[provider_id] = config
        self._check_health(provider_id, notify=False)
        logger.info(f"Registered provider {provider_id} (enabled={config.enabled})")
        self._notify("registered", provider_id)

    def unregister(self, provider_id: str) -> None:
        """Remove a provider and dispose it.

        Raises:
            ProviderNotFoundError: no provider with this id
        """
        with self._lock:
            provider = self._providers.pop(provider_id, None)
            if provider is None:
                raise ProviderNotFoundError(provider_id)
            self._configs.pop(provider_id, None)
            self._health.pop(provider_id, None)

        try:
            provider.dispose()
        except Exception as e:
            logger.warning(f"Provider {provider_id} raised during dispose: {e}")
        logger.info(f"Unregistered provider {provider_id}")
        self._notify("unregistered", provider_id)

    @staticmethod
    def _validate(provider: TimelineProvider) -> str:
        if not isinstance(provider, TimelineProvider):
            name = getattr(provider, "id", None) or type(provider).__name__
            raise ProviderInitializationError(str(name), "object does not implement TimelineProvider")
        provider_id = getattr(provider, "id", None)
        if not provider_id or not isinstance(provider_id, str):
            raise ProviderInitializationError(type(provider).__name__, "provider must have a string id")
        if not getattr(provider, "name", None):
            raise ProviderInitializationError(provider_id, "provider must have a name")
        if getattr(provider, "capabilities", None) is None:
            raise ProviderInitializationError(provider_id, "provider must declare capabilities")
        return provider_id

    # -- lookup -----------------------------------------------------------

    def get(self, provider_id: str) -> Optional[TimelineProvider]:
        with self._lock:
            return self._providers.get(provider_id)

    def providers(self) -> list[TimelineProvider]:
        with self._lock:
            return list(self._providers.values())

    def enabled_providers(self) -> list[TimelineProvider]:
        with self._lock:
            return [p for pid, p in self._providers.items() if self._configs[pid].enabled]

    def healthy_providers(self) -> list[TimelineProvider]:
        """Enabled providers whose health check passes right now."""
        healthy = []
        for provider in self.enabled_providers():
            if self._check_health(provider.id):
                healthy.append(provider)
        return healthy

    # -- enablement -------------------------------------------------------

    def set_enabled(self, provider_id: str, enabled: bool) -> None:
        """Raises ProviderNotFoundError for an unknown id."""
        with self._lock:
            config = self._configs.get(provider_id)
            if config is None:
                raise ProviderNotFoundError(provider_id)
            changed = config.enabled != enabled
            config.enabled = enabled

        if changed:
            logger.info(f"Provider {provider_id} {'enabled' if enabled else 'disabled'}")
            self._notify("enabled" if enabled else "disabled", provider_id)

    def is_enabled(self, provider_id: str) -> bool:
        with self._lock:
            config = self._configs.get(provider_id)
            return config.enabled if config is not None else False

    # -- health -----------------------------------------------------------

    def health(self, provider_id: str) -> Optional[ProviderHealth]:
        with self._lock:
            return self._health.get(provider_id)

    def refresh_health(self) -> dict[str, bool]:
        """Re-run every provider's health check."""
        with self._lock:
            ids = list(self._providers)
        return {pid: self._check_health(pid) for pid in ids}

    def _check_health(self, provider_id: str, notify: bool = True) -> bool:
        provider = self.get(provider_id)
        if provider is None:
            return False

        error = None
        try:
            healthy = bool(provider.is_healthy())
        except Exception as e:
            healthy = False
            error = str(e)
            logger.warning(f"Health check of provider {provider_id} raised: {e}")

        with self._lock:
            if provider_id not in self._providers:
                return False
            previous = self._health.get(provider_id)
            self._health[provider_id] = ProviderHealth(
                healthy=healthy, last_check=datetime.now(timezone.utc), error=error
            )

        if notify and previous is not None and previous.healthy != healthy:
            logger.info(f"Provider {provider_id} is now {'healthy' if healthy else 'unhealthy'}")
            self._notify("health-changed", provider_id)
        return healthy

    # -- listeners --------------------------------------------------------

    def add_listener(self, listener: RegistryListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: RegistryListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, change: str, provider_id: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(change, provider_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        with self._lock:
            return provider_id in self._providers
