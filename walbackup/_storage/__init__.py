"""Table backends with lazy loading support."""

from typing import TYPE_CHECKING

from .factory import TableFactory, _register_backends

if TYPE_CHECKING:
    from .table_memory import MemoryTable
    from .table_redis import RedisTable


def __getattr__(name):
    """Lazy import table backends so redis is only loaded when used."""
    if name == "MemoryTable":
        from .table_memory import MemoryTable
        return MemoryTable
    elif name == "RedisTable":
        from .table_redis import RedisTable
        return RedisTable
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "TableFactory",
    "_register_backends",
    "MemoryTable",
    "RedisTable",
]
