"""Adapter registry: maps service types to adapter instances.

Manifesto:
    Engines resolve adapters by name at run time, so adding a framework is a
    single ``register()`` call rather than a change to every engine.

Tags:
    adapter, registry, lookup
"""

from __future__ import annotations

import threading

from migra.adapters.base import Adapter
from migra.core.errors import AdapterNotFoundError
from migra.core.logging import get_logger
from migra.models import Service

logger = get_logger(__name__)


class AdapterRegistry:
    """Thread-safe name → adapter mapping. Lookups are read-only after setup."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}
        self._lock = threading.Lock()

    def register(self, name: str, adapter: Adapter) -> None:
        """Register ``adapter`` under ``name``, replacing any previous entry."""
        with self._lock:
            self._adapters[name] = adapter
        logger.debug("adapter.registered", name=name, adapter=type(adapter).__name__)

    def get(self, name: str) -> Adapter:
        """Look up an adapter by type name.

        Raises:
            AdapterNotFoundError: Nothing is registered under ``name``.
        """
        with self._lock:
            adapter = self._adapters.get(name)
        if adapter is None:
            raise AdapterNotFoundError(name)
        return adapter

    def get_for_service(self, service: Service) -> Adapter:
        try:
            return self.get(service.type)
        except AdapterNotFoundError as e:
            raise e.with_context(service=service.name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._adapters)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._adapters


def default_registry(command_timeout: float | None = None) -> AdapterRegistry:
    """Registry pre-populated with the built-in Django, Laravel and Prisma adapters."""
    from migra.adapters.django import DjangoAdapter
    from migra.adapters.laravel import LaravelAdapter
    from migra.adapters.prisma import PrismaAdapter

    registry = AdapterRegistry()
    for adapter in (
        DjangoAdapter(command_timeout=command_timeout),
        LaravelAdapter(command_timeout=command_timeout),
        PrismaAdapter(command_timeout=command_timeout),
    ):
        registry.register(adapter.name, adapter)
    return registry


__all__ = ["AdapterRegistry", "default_registry"]
