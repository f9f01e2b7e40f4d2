"""Dashboard repository: create, read, upsert, append and fork dashboards.

Mutations are last-write-wins at upsert granularity. Reads and writes
deep-copy, so a caller never holds a reference into stored state.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from pydantic import ValidationError

from ..errors import DashboardNotFoundError
from .models import Dashboard, Visibility, Widget, new_id, utc_now

logger = logging.getLogger(__name__)


class DashboardRepository:
    """In-memory dashboard store with an optional JSON snapshot file.

    Usage:
        repo = DashboardRepository()
        dash = repo.create("Starknet overview")
        repo.append_widget(dash.id, Widget(title="Daily txs", query="..."))
        copy = repo.fork(repo.get_by_id(dash.id))
    """

    def __init__(self, storage_file: str | Path | None = None) -> None:
        self.storage_file = Path(storage_file) if storage_file else None
        self._dashboards: dict[str, Dashboard] = {}
        self._lock = threading.Lock()
        if self.storage_file is not None:
            self._read()

    # -- queries -------------------------------------------------------------

    def get_by_id(self, dashboard_id: str) -> Dashboard | None:
        with self._lock:
            stored = self._dashboards.get(dashboard_id)
            return stored.model_copy(deep=True) if stored else None

    def list_dashboards(self) -> list[Dashboard]:
        """All dashboards, most recently created first."""
        with self._lock:
            dashboards = sorted(
                self._dashboards.values(), key=lambda d: d.created_at, reverse=True
            )
            return [d.model_copy(deep=True) for d in dashboards]

    # -- mutations -----------------------------------------------------------

    def create(self, name: str, description: str = "") -> Dashboard:
        """New empty private dashboard with a fresh id."""
        dashboard = Dashboard(name=name, description=description)
        with self._lock:
            self._dashboards[dashboard.id] = dashboard
            self._write()
        logger.info("Created dashboard %s (%s)", dashboard.id, name)
        return dashboard.model_copy(deep=True)

    def upsert(self, dashboard: Dashboard) -> Dashboard:
        """Replace the dashboard with the same id, or insert it."""
        stored = dashboard.model_copy(deep=True)
        stored.updated_at = utc_now()
        with self._lock:
            self._dashboards[stored.id] = stored
            self._write()
        dashboard.updated_at = stored.updated_at
        return stored.model_copy(deep=True)

    def delete(self, dashboard_id: str) -> bool:
        with self._lock:
            removed = self._dashboards.pop(dashboard_id, None)
            if removed is not None:
                self._write()
        return removed is not None

    def append_widget(self, dashboard_id: str, widget: Widget) -> Dashboard:
        """Append a widget.

        A fresh id is assigned when the widget has none or its id is
        already taken on this dashboard.

        Raises:
            DashboardNotFoundError: If the dashboard does not exist.
        """
        with self._lock:
            dashboard = self._require(dashboard_id)
            added = widget.model_copy(deep=True)
            if not added.id or dashboard.find_widget(added.id) is not None:
                added.id = new_id()
            dashboard.widgets.append(added)
            dashboard.updated_at = utc_now()
            self._write()
            return dashboard.model_copy(deep=True)

    def update_widget(self, dashboard_id: str, widget: Widget) -> Dashboard:
        """Replace the widget with the same id in place.

        Raises:
            DashboardNotFoundError: If the dashboard or widget does not exist.
        """
        with self._lock:
            dashboard = self._require(dashboard_id)
            for index, existing in enumerate(dashboard.widgets):
                if existing.id == widget.id:
                    dashboard.widgets[index] = widget.model_copy(deep=True)
                    break
            else:
                raise DashboardNotFoundError(
                    f"Widget {widget.id} not found on dashboard {dashboard_id}"
                )
            dashboard.updated_at = utc_now()
            self._write()
            return dashboard.model_copy(deep=True)

    def remove_widget(self, dashboard_id: str, widget_id: str) -> Dashboard:
        with self._lock:
            dashboard = self._require(dashboard_id)
            remaining = [w for w in dashboard.widgets if w.id != widget_id]
            if len(remaining) == len(dashboard.widgets):
                raise DashboardNotFoundError(
                    f"Widget {widget_id} not found on dashboard {dashboard_id}"
                )
            dashboard.widgets = remaining
            dashboard.updated_at = utc_now()
            self._write()
            return dashboard.model_copy(deep=True)

    def add_text_block(
        self, dashboard_id: str, markdown: str, title: str = "Markdown Block"
    ) -> Dashboard:
        """Append a markdown text block (no query, no config)."""
        block = Widget(title=title, markdown=markdown)
        block.layout.w, block.layout.h = 4, 2
        return self.append_widget(dashboard_id, block)

    def update_text_block(self, dashboard_id: str, widget_id: str, markdown: str) -> Dashboard:
        with self._lock:
            dashboard = self._require(dashboard_id)
            widget = dashboard.find_widget(widget_id)
            if widget is None:
                raise DashboardNotFoundError(
                    f"Widget {widget_id} not found on dashboard {dashboard_id}"
                )
            widget.markdown = markdown
            dashboard.updated_at = utc_now()
            self._write()
            return dashboard.model_copy(deep=True)

    def fork(self, source: Dashboard) -> Dashboard:
        """Copy a dashboard under a new id and persist the copy.

        Widgets are deep-copied and keep their ids; the source is untouched.
        """
        now = utc_now()
        forked = Dashboard(
            id=new_id(),
            name=f"{source.name} (fork)",
            description=source.description,
            widgets=[w.model_copy(deep=True) for w in source.widgets],
            visibility=Visibility.PRIVATE,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._dashboards[forked.id] = forked
            self._write()
        logger.info("Forked dashboard %s into %s", source.id, forked.id)
        return forked.model_copy(deep=True)

    # -- internals -----------------------------------------------------------

    def _require(self, dashboard_id: str) -> Dashboard:
        dashboard = self._dashboards.get(dashboard_id)
        if dashboard is None:
            raise DashboardNotFoundError(f"Dashboard {dashboard_id} not found")
        return dashboard

    def _read(self) -> None:
        if self.storage_file is None or not self.storage_file.exists():
            return
        try:
            raw = json.loads(self.storage_file.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("snapshot is not a list")
            loaded = [Dashboard.model_validate(item) for item in raw]
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Failed to read dashboards from %s: %s", self.storage_file, e)
            return
        self._dashboards = {d.id: d for d in loaded}

    def _write(self) -> None:
        if self.storage_file is None:
            return
        snapshot = [d.model_dump(mode="json") for d in self._dashboards.values()]
        try:
            self.storage_file.parent.mkdir(parents=True, exist_ok=True)
            self.storage_file.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to write dashboards to %s: %s", self.storage_file, e)
