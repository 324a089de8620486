"""Public API surface for the PaisaPredict service client."""

from .paisa_client import DEFAULT_API_URL, PaisaClient

__all__ = ["DEFAULT_API_URL", "PaisaClient"]
