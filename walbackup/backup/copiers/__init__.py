"""Built-in copy backends."""

from .local import LocalCopyTask


def __getattr__(name):
    """Lazy import of backends with heavier dependencies."""
    if name == "DistCpCopyTask":
        from .distcp import DistCpCopyTask
        return DistCpCopyTask
    elif name == "S3CopyTask":
        from .s3 import S3CopyTask
        return S3CopyTask
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = ["LocalCopyTask", "DistCpCopyTask", "S3CopyTask"]
