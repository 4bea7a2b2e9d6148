"""Persisted grid view state (layout, sort, filter, theme)."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class Theme(str, Enum):
    """Theme preference."""
    LIGHT = "light"
    DARK = "dark"


class ColumnState(BaseModel):
    """One grid column as reported by the grid's column-state accessor."""
    col_id: str = Field(..., alias="colId", description="Column id (field name)")
    width: Optional[int] = Field(None, ge=0)
    hide: bool = False
    pinned: Optional[str] = Field(None, description="left, right or null")
    sort: Optional[str] = None
    sort_index: Optional[int] = Field(None, alias="sortIndex")
    flex: Optional[float] = None

    model_config = {"populate_by_name": True}


class SortModelItem(BaseModel):
    """Active sort for one column."""
    col_id: str = Field(..., alias="colId")
    sort: str = Field(..., pattern="^(asc|desc)$")

    model_config = {"populate_by_name": True}


class ViewState(BaseModel):
    """Everything the grid view restores on startup."""
    theme: Theme = Field(default=Theme.LIGHT)
    column_state: list[ColumnState] = Field(default_factory=list, description="Column order is list order")
    filter_model: dict[str, Any] = Field(default_factory=dict)
    sort_model: list[SortModelItem] = Field(default_factory=list)
