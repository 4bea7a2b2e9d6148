"""Durable client-local storage for the grid's view state."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from src.models.view_state import Theme, ViewState
from src.utils.config import get_settings
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

THEME_KEY = "theme"
COLUMN_STATE_KEY = "grid_column_state"
FILTER_MODEL_KEY = "grid_filter_model"
SORT_MODEL_KEY = "grid_sort_model"

# storage key -> ViewState attribute
_KEY_TO_FIELD = {
    THEME_KEY: "theme",
    COLUMN_STATE_KEY: "column_state",
    FILTER_MODEL_KEY: "filter_model",
    SORT_MODEL_KEY: "sort_model",
}


class ViewStateStore:
    """
    Key-value JSON file holding theme, column layout, filter and sort.

    Missing or unreadable files load as defaults; a corrupt value for one key
    only resets that key.
    """

    def __init__(self, path: Optional[str | Path] = None):
        self.path = Path(path or get_settings().view_state_path)

    def _read_raw(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable view state", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring view state that is not an object", path=str(self.path))
            return {}
        return data

    def _write_raw(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".view_state.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def load(self) -> ViewState:
        """Read the persisted state to reapply when the view initializes."""
        raw = self._read_raw()
        values: dict[str, Any] = {}
        for key, field_name in _KEY_TO_FIELD.items():
            if key not in raw:
                continue
            try:
                ViewState.model_validate({field_name: raw[key]})
            except ValidationError:
                logger.warning("Resetting invalid view state key", key=key)
                continue
            values[field_name] = raw[key]
        return ViewState.model_validate(values)

    def save(self, state: ViewState) -> None:
        dumped = state.model_dump(mode="json", by_alias=True)
        self._write_raw({key: dumped[field_name] for key, field_name in _KEY_TO_FIELD.items()})

    def get(self, key: str) -> Any:
        if key not in _KEY_TO_FIELD:
            raise KeyError(key)
        return self._read_raw().get(key)

    def set(self, key: str, value: Any) -> None:
        """Persist one key, validating it against the view-state model."""
        if key not in _KEY_TO_FIELD:
            raise KeyError(key)
        field_name = _KEY_TO_FIELD[key]
        validated = ViewState.model_validate({field_name: value})
        raw = self._read_raw()
        raw[key] = validated.model_dump(mode="json", by_alias=True)[field_name]
        self._write_raw(raw)

    def toggle_theme(self) -> Theme:
        current = self.load().theme
        new_theme = Theme.DARK if current is Theme.LIGHT else Theme.LIGHT
        self.set(THEME_KEY, new_theme.value)
        return new_theme

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
