"""Metrics collection core: models, validation, contexts, logging, storage, service, dashboard, routing and middleware."""

__version__ = "0.1.0"