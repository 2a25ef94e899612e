"""HTTP service mode."""

from .app import create_app, create_app_from_runtime, run_service

__all__ = ["create_app", "create_app_from_runtime", "run_service"]
