"""Live widget list with its z-index counter and batch reservation list."""

import logging
from typing import Iterable, Optional

from ouroboros.core import layout
from ouroboros.exceptions import WidgetNotFound
from ouroboros.types import ReservedSpot, Widget

logger = logging.getLogger(__name__)

INITIAL_MAX_Z = 10


class WidgetStore:
    """Owns the canvas state. Any change to the widget list drops reservations."""

    def __init__(self, widgets: Optional[Iterable[Widget]] = None) -> None:
        self._widgets: list[Widget] = []
        self._reserved: list[ReservedSpot] = []
        self.max_z = INITIAL_MAX_Z
        self.replace_all(widgets or [])

    # ── Reads ─────────────────────────────────────────────────────────────────

    @property
    def widgets(self) -> list[Widget]:
        """Snapshot of the current widget list, in list order."""
        return list(self._widgets)

    @property
    def reserved_spots(self) -> list[ReservedSpot]:
        return list(self._reserved)

    def __len__(self) -> int:
        return len(self._widgets)

    def __contains__(self, widget_id: str) -> bool:
        return self.find(widget_id) is not None

    def find(self, widget_id: str) -> Optional[Widget]:
        for widget in self._widgets:
            if widget.id == widget_id:
                return widget
        return None

    def get(self, widget_id: str) -> Widget:
        """Raises WidgetNotFound for unknown ids."""
        widget = self.find(widget_id)
        if widget is None:
            raise WidgetNotFound(f"Widget '{widget_id}' not found", widget_id=widget_id)
        return widget

    # ── Internal ──────────────────────────────────────────────────────────────

    def _commit(self, widgets: list[Widget]) -> None:
        self._widgets = widgets
        self._reserved = []

    def _replace(self, widget_id: str, **changes) -> Widget:
        current = self.get(widget_id)
        updated = current.model_copy(update=changes)
        self._commit([updated if w.id == widget_id else w for w in self._widgets])
        return updated

    # ── Mutations ─────────────────────────────────────────────────────────────

    def next_z(self) -> int:
        self.max_z += 1
        return self.max_z

    def reserve_spot(self, widget_id: Optional[str] = None) -> ReservedSpot:
        """Claim the next free cell for a widget that is not committed yet."""
        x, y = layout.find_position(self._widgets, self._reserved)
        spot = ReservedSpot(x=x, y=y, widget_id=widget_id)
        self._reserved.append(spot)
        return spot

    def add(self, widget: Widget) -> Widget:
        """Append *widget*, filling in the default size. Replaces a widget with the same id.

        A zero z-index, or one already held by another widget, is replaced
        with the next one from the counter.
        """
        z_index = widget.z_index
        if z_index <= 0 or any(w.z_index == z_index and w.id != widget.id for w in self._widgets):
            z_index = self.next_z()
        widget = widget.model_copy(update={
            "width": widget.width or layout.DEFAULT_WIDTH,
            "height": widget.height or layout.DEFAULT_HEIGHT,
            "z_index": z_index,
        })
        if widget.z_index > self.max_z:
            self.max_z = widget.z_index
        self._commit([w for w in self._widgets if w.id != widget.id] + [widget])
        return widget

    def remove(self, widget_id: str) -> bool:
        """Remove *widget_id*. Returns False (and changes nothing) if it is absent."""
        if self.find(widget_id) is None:
            return False
        self._commit([w for w in self._widgets if w.id != widget_id])
        return True

    def update_source(self, widget_id: str, source_code: str, prompt_text: str) -> Widget:
        return self._replace(widget_id, source_code=source_code, prompt_text=prompt_text)

    def resize(self, widget_id: str, width: float, height: float) -> Widget:
        return self._replace(widget_id, width=width, height=height)

    def move(self, widget_id: str, x: float, y: float) -> Widget:
        return self._replace(widget_id, x=x, y=y)

    def bring_to_front(self, widget_id: str) -> Widget:
        widget = self.get(widget_id)
        if widget.z_index == self.max_z:
            return widget
        return self._replace(widget_id, z_index=self.next_z())

    def toggle_expand(self, widget_id: str) -> Widget:
        widget = self.get(widget_id)
        self._replace(widget_id, expanded=not widget.expanded)
        return self.bring_to_front(widget_id)

    def reorder(self, order: list[str]) -> list[Widget]:
        """Reorder by id. Ids not listed keep their relative order at the end.

        Raises:
            WidgetNotFound: *order* names a widget that does not exist.
        """
        by_id = {w.id: w for w in self._widgets}
        missing = [wid for wid in order if wid not in by_id]
        if missing:
            raise WidgetNotFound(f"Widget '{missing[0]}' not found", widget_id=missing[0])
        seen = set(order)
        reordered = [by_id[wid] for wid in dict.fromkeys(order)]
        reordered += [w for w in self._widgets if w.id not in seen]
        self._commit(reordered)
        return self.widgets

    def auto_layout(self, viewport_width: float) -> list[Widget]:
        self._commit(layout.auto_layout(self._widgets, viewport_width))
        return self.widgets

    def replace_all(self, widgets: Iterable[Widget]) -> list[Widget]:
        """Swap in a whole canvas (preset load). z-indices stay unique."""
        self._commit([])
        for widget in widgets:
            self.add(widget)
        return self.widgets

    def clear(self) -> None:
        self._commit([])
