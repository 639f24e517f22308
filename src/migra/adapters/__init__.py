"""Framework adapters and the registry that resolves them."""

from migra.adapters.base import Adapter, BaseAdapter, sanitize_output
from migra.adapters.django import DjangoAdapter
from migra.adapters.laravel import LaravelAdapter
from migra.adapters.prisma import PrismaAdapter
from migra.adapters.registry import AdapterRegistry, default_registry

SUPPORTED_TYPES = ("django", "laravel", "prisma")

__all__ = [
    "Adapter",
    "BaseAdapter",
    "DjangoAdapter",
    "LaravelAdapter",
    "PrismaAdapter",
    "AdapterRegistry",
    "default_registry",
    "sanitize_output",
    "SUPPORTED_TYPES",
]
