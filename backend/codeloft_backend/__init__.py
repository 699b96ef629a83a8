"""Backend package for the Codeloft editor services."""

from importlib import metadata

from .tasks import celery_app

__all__ = ["__version__", "celery_app"]


def __getattr__(name: str) -> str:
    if name == "__version__":
        try:
            return metadata.version("codeloft")
        except (
            metadata.PackageNotFoundError
        ):  # pragma: no cover - fallback for dev installs
            return "0.0.0"
    raise AttributeError(name)
