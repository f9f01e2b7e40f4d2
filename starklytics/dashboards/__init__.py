"""Dashboard models, repository and composer."""

from .composer import DashboardComposer
from .models import Dashboard, Visibility, Widget, WidgetLayout
from .repository import DashboardRepository

__all__ = [
    "DashboardComposer",
    "Dashboard",
    "Visibility",
    "Widget",
    "WidgetLayout",
    "DashboardRepository",
]
