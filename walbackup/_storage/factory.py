"""Table factory for centralized metadata table backend creation."""

from typing import Callable, Dict, Type

from ..client import AsyncTable
from ..exceptions import ConfigurationError


class TableFactory:
    """Factory for creating table backends with validation and registration."""

    _backends: Dict[str, Callable[[], Type[AsyncTable]]] = {}

    ALLOWED_BACKENDS = {"memory", "redis"}

    @classmethod
    def register(cls, name: str, backend_loader: Callable[[], Type[AsyncTable]]) -> None:
        """Register a table backend.

        Args:
            name: Backend name (must be in ALLOWED_BACKENDS)
            backend_loader: Function that returns the table class

        Raises:
            ValueError: If backend name not in allowed list
        """
        if name not in cls.ALLOWED_BACKENDS:
            raise ValueError(f"Backend {name} not in allowed table backends: {cls.ALLOWED_BACKENDS}")
        cls._backends[name] = backend_loader

    @classmethod
    def create(cls, backend: str, namespace: str, global_config: dict, **kwargs) -> AsyncTable:
        """Create a table instance.

        Raises:
            ConfigurationError: If backend not registered
        """
        if backend not in cls._backends:
            _register_backends()
            if backend not in cls._backends:
                raise ConfigurationError(
                    f"Unknown table backend: {backend}. Available: {list(cls._backends.keys())}"
                )

        backend_class = cls._backends[backend]()
        return backend_class(namespace=namespace, global_config=global_config, **kwargs)


def _get_memory_table():
    """Lazy loader for in-process table."""
    from .table_memory import MemoryTable
    return MemoryTable


def _get_redis_table():
    """Lazy loader for Redis table."""
    from .table_redis import RedisTable
    return RedisTable


def _register_backends():
    """Register built-in backends with lazy loaders. Called when factory is first used."""
    if not TableFactory._backends:
        TableFactory.register("memory", _get_memory_table)
        TableFactory.register("redis", _get_redis_table)
