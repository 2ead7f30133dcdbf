"""Declarative UI runtime that widget source builds its element trees with.

A widget component returns an ``Element``; the shell serialises it with
``to_dict()`` and draws it. Event-handler props (any callable) cannot cross
that boundary, so they are replaced by a ``{"$handler": "<id>"}`` marker and
collected by ``handlers()`` for the renderer to dispatch.

Usage (inside widget source)::

    from ui import Card, Heading, Button, themed

    def Counter(props):
        state = props["state"]
        state.setdefault("n", 0)
        return Card(
            Heading("Counter"),
            Button(f"Clicked {state['n']}", on_click=lambda: state.update(n=state["n"] + 1)),
            tone=themed("white", "zinc-900"),
        )

    export default Counter
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Union

from pydantic import BaseModel, Field

HANDLER_KEY = "$handler"


class Element(BaseModel):
    """One node of a rendered widget tree."""
    tag: str
    props: dict[str, Any] = Field(default_factory=dict)
    children: list[Union["Element", str]] = Field(default_factory=list)

    def to_dict(self, path: str = "0") -> dict:
        props = {}
        for key, value in self.props.items():
            if callable(value):
                props[key] = {HANDLER_KEY: f"{path}:{key}"}
            else:
                props[key] = _plain(value)
        return {
            "tag": self.tag,
            "props": props,
            "children": [
                child.to_dict(f"{path}.{i}") if isinstance(child, Element) else child
                for i, child in enumerate(self.children)
            ],
        }

    def handlers(self, path: str = "0") -> Iterator[tuple[str, Callable]]:
        """Yield ``(handler_id, callable)`` for every callable prop in the tree."""
        for key, value in self.props.items():
            if callable(value):
                yield f"{path}:{key}", value
        for i, child in enumerate(self.children):
            if isinstance(child, Element):
                yield from child.handlers(f"{path}.{i}")

    def find(self, tag: str) -> list["Element"]:
        found = [self] if self.tag == tag else []
        for child in self.children:
            if isinstance(child, Element):
                found.extend(child.find(tag))
        return found

    def text(self) -> str:
        """Concatenated text content, depth first."""
        parts = []
        for child in self.children:
            parts.append(child.text() if isinstance(child, Element) else child)
        return " ".join(p for p in parts if p)


Element.model_rebuild()


def _plain(value: Any) -> Any:
    if isinstance(value, Element):
        return value.to_dict()
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _flatten(children: tuple) -> list:
    out: list = []
    for child in children:
        if child is None or child is False or child is True:
            continue
        if isinstance(child, (list, tuple)):
            out.extend(_flatten(tuple(child)))
        elif isinstance(child, Element):
            out.append(child)
        else:
            out.append(str(child))
    return out


def h(tag: str, props: dict = None, *children: Any) -> Element:
    """Build an element. Nested lists are flattened; None and booleans are skipped."""
    return Element(tag=tag, props=dict(props or {}), children=_flatten(children))


def _primitive(tag: str) -> Callable[..., Element]:
    def build(*children: Any, **props: Any) -> Element:
        return h(tag, props, *children)
    build.__name__ = tag
    build.__doc__ = f"``{tag}`` element. Positional args are children, keywords are props."
    return build


Box = _primitive("Box")
Row = _primitive("Row")
Column = _primitive("Column")
Card = _primitive("Card")
Heading = _primitive("Heading")
Text = _primitive("Text")
Button = _primitive("Button")
Input = _primitive("Input")
TextArea = _primitive("TextArea")
Select = _primitive("Select")
Image = _primitive("Image")
Badge = _primitive("Badge")
Divider = _primitive("Divider")
List = _primitive("List")
ListItem = _primitive("ListItem")
Grid = _primitive("Grid")
Spacer = _primitive("Spacer")
Progress = _primitive("Progress")


def themed(light: Any, dark: Any) -> dict:
    """A value that differs between light and dark presentation."""
    return {"light": light, "dark": dark}


def error_panel(title: str, message: str) -> Element:
    """Inline panel shown in place of a widget that failed to compile or render."""
    return h(
        "ErrorPanel",
        {"tone": themed("red-50", "red-950")},
        h("Heading", {"level": 3}, title),
        h("Text", {"monospace": True}, message),
    )


PRIMITIVES = {
    fn.__name__: fn
    for fn in (
        Box, Row, Column, Card, Heading, Text, Button, Input, TextArea, Select,
        Image, Badge, Divider, List, ListItem, Grid, Spacer, Progress,
    )
}
