"""
production_services -- Package init and public API.

Responsibility:
    Transactional orchestration over the production kernel and engines.
    This is the only layer that opens transactions and reads configuration.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        production_services/ -> production_engines/  (allowed)
        production_services/ -> production_kernel/   (allowed)
        production_services/ -> production_config/   (allowed)
        production_engines/  -> production_services/ (FORBIDDEN)
        production_kernel/   -> production_services/ (FORBIDDEN)
"""

from production_services.production_core import ProductionCore

__all__ = [
    "ProductionCore",
]
