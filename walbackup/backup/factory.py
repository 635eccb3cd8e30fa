"""Copy task factory, resolved once per backup run."""

from typing import Callable, Dict, Type

from ..exceptions import ConfigurationError
from .copy_task import BaseCopyTask


class CopyTaskFactory:
    """Factory for creating copy backends with validation and registration."""

    _backends: Dict[str, Callable[[], Type[BaseCopyTask]]] = {}

    ALLOWED_BACKENDS = {"local", "distcp", "s3"}

    @classmethod
    def register(cls, name: str, backend_loader: Callable[[], Type[BaseCopyTask]]) -> None:
        """Register a copy backend.

        Args:
            name: Backend name (must be in ALLOWED_BACKENDS)
            backend_loader: Function that returns the copy task class

        Raises:
            ValueError: If backend name not in allowed list
        """
        if name not in cls.ALLOWED_BACKENDS:
            raise ValueError(f"Backend {name} not in allowed copy backends: {cls.ALLOWED_BACKENDS}")
        cls._backends[name] = backend_loader

    @classmethod
    def create(cls, backend: str, global_config: dict) -> BaseCopyTask:
        """Create a copy task instance.

        Args:
            backend: Backend name, usually global_config["copy_backend"]
            global_config: Global configuration dict

        Returns:
            Constructed copy task

        Raises:
            ConfigurationError: If backend not registered
        """
        if backend not in cls._backends:
            _register_backends()
            if backend not in cls._backends:
                raise ConfigurationError(
                    f"Unknown copy backend: {backend}. Available: {list(cls._backends.keys())}"
                )

        backend_class = cls._backends[backend]()
        return backend_class(global_config=global_config)


def _get_local_copy_task():
    """Lazy loader for local filesystem copy."""
    from .copiers.local import LocalCopyTask
    return LocalCopyTask


def _get_distcp_copy_task():
    """Lazy loader for DistCp copy."""
    from .copiers.distcp import DistCpCopyTask
    return DistCpCopyTask


def _get_s3_copy_task():
    """Lazy loader for S3 copy."""
    from .copiers.s3 import S3CopyTask
    return S3CopyTask


def _register_backends():
    """Register built-in backends with lazy loaders. Called when factory is first used."""
    if not CopyTaskFactory._backends:
        CopyTaskFactory.register("local", _get_local_copy_task)
        CopyTaskFactory.register("distcp", _get_distcp_copy_task)
        CopyTaskFactory.register("s3", _get_s3_copy_task)
