"""Starklytics analytics core.

This package contains the query and dashboard components:
- config: Configuration loading and management
- spellbook: Raw events, daily rollups and the query dispatcher
- gateway: Live query transport with heartbeat liveness
- visuals: Query result to chart/table/pivot/counter render models
- dashboards: Dashboard persistence and widget composition
"""

from __future__ import annotations

__all__: list[str] = []
