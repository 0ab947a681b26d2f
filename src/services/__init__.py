"""
Service Layer Package

This package contains business logic services that separate the HTTP
layer (src/api) from the data access layer (src/db, src/cache).

Core Services:
- GamificationService: Check-ins, activities, XP, streaks, achievements, stats

Support:
- statistical_analysis: Descriptive statistics for check-in dashboards
"""

from src.services.container import (
    ServiceContainer,
    build_infrastructure,
    get_container,
    init_container,
    reset_container,
    shutdown_infrastructure,
)

__all__ = [
    "ServiceContainer",
    "build_infrastructure",
    "get_container",
    "init_container",
    "reset_container",
    "shutdown_infrastructure",
]
