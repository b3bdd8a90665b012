"""Model adapters that process tasks against a completion backend."""

from .model_adapter import ModelAdapter

__all__ = ["ModelAdapter"]
