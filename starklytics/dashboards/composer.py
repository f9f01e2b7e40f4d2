"""Dashboard composer: binds widgets to queries and cached render models."""

from __future__ import annotations

import logging

from ..errors import DashboardNotFoundError, RawStoreUnavailableError
from ..spellbook.dispatcher import QueryDispatcher
from ..visuals.models import NoData, WidgetConfig
from ..visuals.transformer import transform
from .models import Dashboard, Widget, WidgetLayout
from .repository import DashboardRepository

logger = logging.getLogger(__name__)


class DashboardComposer:
    """Assemble dashboards from query widgets.

    Usage:
        composer = DashboardComposer(repository, dispatcher)
        dash = composer.create("Gas")
        composer.add_query_widget(
            dash.id, "Daily gas", "SELECT gas fees FROM ...",
            WidgetConfig(chart_kind="line", x_field="block_date", y_field="metric_value"),
        )
    """

    def __init__(self, repository: DashboardRepository, dispatcher: QueryDispatcher) -> None:
        self.repository = repository
        self.dispatcher = dispatcher

    def create(self, name: str, description: str = "") -> Dashboard:
        return self.repository.create(name, description)

    def get_by_id(self, dashboard_id: str) -> Dashboard | None:
        return self.repository.get_by_id(dashboard_id)

    def upsert(self, dashboard: Dashboard) -> Dashboard:
        return self.repository.upsert(dashboard)

    def append_widget(self, dashboard_id: str, widget: Widget) -> Dashboard:
        return self.repository.append_widget(dashboard_id, widget)

    def fork(self, dashboard: Dashboard) -> Dashboard:
        return self.repository.fork(dashboard)

    def render_widget(self, widget: Widget) -> Widget:
        """Execute the widget's query and cache the render model on it.

        Text blocks are returned unchanged. A failing query caches a
        no-data model carrying the failure text.

        Raises:
            RawStoreUnavailableError: If the raw event store cannot be read.
        """
        if widget.config is None:
            return widget
        try:
            result = self.dispatcher.execute(widget.query)
        except RawStoreUnavailableError:
            raise
        except Exception as e:
            logger.exception("Widget query failed: %.100s", widget.query)
            widget.render = NoData(reason=f"query failed: {e}").to_dict()
            return widget
        widget.render = transform(result, widget.config).to_dict()
        return widget

    def add_query_widget(
        self,
        dashboard_id: str,
        title: str,
        query: str,
        config: WidgetConfig,
        layout: WidgetLayout | None = None,
    ) -> Dashboard:
        """Build, render and append a query widget.

        Raises:
            DashboardNotFoundError: If the dashboard does not exist.
        """
        if self.repository.get_by_id(dashboard_id) is None:
            raise DashboardNotFoundError(f"Dashboard {dashboard_id} not found")
        widget = Widget(title=title, query=query, config=config, layout=layout or WidgetLayout())
        return self.repository.append_widget(dashboard_id, self.render_widget(widget))

    def refresh(self, dashboard_id: str) -> Dashboard:
        """Re-render every query widget and save the dashboard.

        Raises:
            DashboardNotFoundError: If the dashboard does not exist.
        """
        dashboard = self.repository.get_by_id(dashboard_id)
        if dashboard is None:
            raise DashboardNotFoundError(f"Dashboard {dashboard_id} not found")
        for widget in dashboard.widgets:
            self.render_widget(widget)
        return self.repository.upsert(dashboard)
