"""
Observability module for the athlete mindset progress engine.

This module provides:
- Metrics collection with Prometheus
- Request metrics middleware for FastAPI
"""

__all__ = ["metrics", "metrics_middleware"]
