"""Capability modules a widget may import inside the sandbox.

Every module is a fresh ``types.ModuleType`` holding an explicit export list,
so nothing the implementation imports leaks into widget code. The capability
table maps the import name widgets use to that module object.
"""

from types import ModuleType
from typing import Any, Callable

from ouroboros.runtime import elements
from ouroboros.runtime.elements import Element, h

# ── Icons ─────────────────────────────────────────────────────────────────────

ICON_NAMES = (
    "Activity", "AlertCircle", "AlertTriangle", "ArrowDown", "ArrowLeft",
    "ArrowRight", "ArrowUp", "BarChart", "Bell", "Book", "Bookmark", "Calendar",
    "Camera", "Check", "CheckCircle", "ChevronDown", "ChevronLeft",
    "ChevronRight", "ChevronUp", "Circle", "Clipboard", "Clock", "Cloud",
    "Code", "Copy", "CreditCard", "DollarSign", "Download", "Edit", "Eye",
    "EyeOff", "File", "FileText", "Filter", "Flag", "Folder", "Gift", "Globe",
    "Grid", "Heart", "HelpCircle", "Home", "Image", "Inbox", "Info", "Key",
    "Layers", "Layout", "Link", "List", "Loader", "Lock", "LogOut", "Mail",
    "Map", "MapPin", "Menu", "MessageCircle", "MessageSquare", "Mic", "Minus",
    "Moon", "MoreHorizontal", "Music", "Package", "Pause", "PieChart", "Play",
    "Plus", "RefreshCw", "Save", "Search", "Send", "Settings", "Share",
    "ShoppingCart", "Sparkles", "Square", "Star", "Sun", "Tag", "Target",
    "Thermometer", "Trash", "Trash2", "TrendingDown", "TrendingUp", "Trophy",
    "Unlock", "Upload", "User", "Users", "Video", "Volume2", "Wallet", "Wind",
    "X", "XCircle", "Zap",
)


def _icon(name: str) -> Callable[..., Element]:
    def build(**props: Any) -> Element:
        return h("Icon", {"name": name, **props})
    build.__name__ = name
    return build


# ── Charts ────────────────────────────────────────────────────────────────────

CHART_PARTS = (
    "LineChart", "BarChart", "AreaChart", "PieChart", "Line", "Bar", "Area",
    "Pie", "XAxis", "YAxis", "CartesianGrid", "Tooltip", "Legend",
    "ResponsiveContainer",
)


def _chart(tag: str) -> Callable[..., Element]:
    def build(*children: Any, **props: Any) -> Element:
        return h(tag, props, *children)
    build.__name__ = tag
    return build


# ── Drag and drop ─────────────────────────────────────────────────────────────

def array_move(items: list, old_index: int, new_index: int) -> list:
    """Return a copy of *items* with the element at *old_index* moved to *new_index*."""
    moved = list(items)
    if not moved:
        return moved
    moved.insert(new_index, moved.pop(old_index))
    return moved


class _CssTransform:
    """``CSS.Transform`` / ``CSS.Translate`` from the drag-and-drop utilities.

    ``translate3d`` and ``toString`` are aliases of ``to_string``; generated
    code reaches for both often enough that rejecting them breaks widgets.
    """

    def __init__(self, with_scale: bool) -> None:
        self.with_scale = with_scale

    def to_string(self, transform: dict = None) -> str:
        if not transform:
            return ""
        x = transform.get("x", 0)
        y = transform.get("y", 0)
        css = f"translate3d({x}px, {y}px, 0)"
        if self.with_scale:
            css += f" scaleX({transform.get('scale_x', 1)}) scaleY({transform.get('scale_y', 1)})"
        return css

    def translate3d(self, transform: dict = None) -> str:
        return self.to_string(transform)

    def toString(self, transform: dict = None) -> str:
        return self.to_string(transform)


class _Css:
    def __init__(self) -> None:
        self.Transform = _CssTransform(with_scale=True)
        self.Translate = _CssTransform(with_scale=False)


def _dnd_element(tag: str) -> Callable[..., Element]:
    def build(*children: Any, **props: Any) -> Element:
        return h(tag, props, *children)
    build.__name__ = tag
    return build


def use_sortable(id: str) -> dict:
    """Static sortable descriptor; the shell drives the actual drag."""
    return {"id": id, "transform": None, "transition": None, "is_dragging": False}


# ── Module construction ───────────────────────────────────────────────────────

def _module(name: str, exports: dict[str, Any]) -> ModuleType:
    module = ModuleType(name)
    for key, value in exports.items():
        setattr(module, key, value)
    return module


def build_capabilities() -> dict[str, ModuleType]:
    """Fresh capability table: import name -> module object."""
    ui = _module("ui", {**elements.PRIMITIVES, "h": h, "themed": elements.themed})
    icons = _module("icons", {name: _icon(name) for name in ICON_NAMES})
    charts = _module("charts", {name: _chart(name) for name in CHART_PARTS})

    css = _Css()
    core = _module("dnd.core", {
        "DndContext": _dnd_element("DndContext"),
        "Draggable": _dnd_element("Draggable"),
        "Droppable": _dnd_element("Droppable"),
        "DragOverlay": _dnd_element("DragOverlay"),
    })
    sortable = _module("dnd.sortable", {
        "SortableContext": _dnd_element("SortableContext"),
        "SortableItem": _dnd_element("SortableItem"),
        "use_sortable": use_sortable,
        "array_move": array_move,
        "arrayMove": array_move,
        "vertical_list_sorting_strategy": "vertical",
        "horizontal_list_sorting_strategy": "horizontal",
    })
    utilities = _module("dnd.utilities", {"CSS": css})
    dnd = _module("dnd", {
        **{k: getattr(core, k) for k in ("DndContext", "Draggable", "Droppable", "DragOverlay")},
        "SortableContext": sortable.SortableContext,
        "array_move": array_move,
        "arrayMove": array_move,
        "CSS": css,
        "core": core,
        "sortable": sortable,
        "utilities": utilities,
    })
    return {
        "ui": ui,
        "icons": icons,
        "charts": charts,
        "dnd": dnd,
        "dnd.core": core,
        "dnd.sortable": sortable,
        "dnd.utilities": utilities,
    }


CAPABILITY_NAMES = ("ui", "icons", "charts", "dnd", "dnd.core", "dnd.sortable", "dnd.utilities")
