"""Dashboard and widget models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ..visuals.models import WidgetConfig


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class Visibility(str, Enum):
    PRIVATE = "private"
    PUBLIC = "public"


class WidgetLayout(BaseModel):
    """Grid position and size."""

    x: int = 0
    y: int = 0
    w: int = Field(default=4, gt=0)
    h: int = Field(default=8, gt=0)


class Widget(BaseModel):
    """One chart, table, counter or text block on a dashboard.

    Query widgets carry ``query`` and ``config``; text blocks carry
    ``markdown`` and no config. ``render`` caches the last render model.
    An empty id is replaced when the widget is appended to a dashboard.
    """

    id: str = ""
    title: str = ""
    query: str = ""
    config: WidgetConfig | None = None
    markdown: str | None = None
    render: dict[str, Any] | None = None
    layout: WidgetLayout = Field(default_factory=WidgetLayout)

    @property
    def is_text_block(self) -> bool:
        return self.config is None and self.markdown is not None


class Dashboard(BaseModel):
    """Named, ordered collection of widgets. Widget order is render order."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    widgets: list[Widget] = Field(default_factory=list)
    visibility: Visibility = Visibility.PRIVATE
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def find_widget(self, widget_id: str) -> Widget | None:
        for widget in self.widgets:
            if widget.id == widget_id:
                return widget
        return None
