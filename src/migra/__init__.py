"""
migra: database migration orchestration for multi-service, multi-tenant systems.

- migra.core: errors, logging, cancellation
- migra.adapters: Django / Laravel / Prisma adapters and the registry
- migra.engine: sequential and parallel execution engines
- migra.tenant: tenant sources and the tenant executor
- migra.state: durable execution history
- migra.config: ``migra.yaml`` loading and validation
"""

__version__ = "0.1.0"
