"""Route modules for FastAPI application."""
from . import evaluate

__all__ = ["evaluate"]
