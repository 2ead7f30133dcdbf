"""Tests for ouroboros/core/store.py: canvas state, z-order and reservations."""

import pytest

from ouroboros.core.layout import DEFAULT_HEIGHT, DEFAULT_WIDTH
from ouroboros.core.store import INITIAL_MAX_Z, WidgetStore
from ouroboros.exceptions import WidgetNotFound
from ouroboros.types import Widget


def _w(wid, **kw) -> Widget:
    return Widget(id=wid, source_code="src", prompt_text=f"prompt {wid}", **kw)


class TestAddAndRead:

    def test_add_fills_default_size(self, store):
        widget = store.add(_w("a"))
        assert (widget.width, widget.height) == (DEFAULT_WIDTH, DEFAULT_HEIGHT)
        assert store.get("a").width == DEFAULT_WIDTH

    def test_add_keeps_explicit_size(self, store):
        assert store.add(_w("a", width=300, height=200)).width == 300

    def test_add_same_id_replaces(self, store):
        store.add(_w("a"))
        store.add(_w("a", x=50))
        assert len(store) == 1
        assert store.get("a").x == 50

    def test_get_unknown_raises(self, store):
        with pytest.raises(WidgetNotFound) as exc_info:
            store.get("nope")
        assert exc_info.value.widget_id == "nope"

    def test_contains_and_find(self, store):
        store.add(_w("a"))
        assert "a" in store
        assert store.find("b") is None

    def test_widgets_is_a_snapshot(self, store):
        store.add(_w("a"))
        snapshot = store.widgets
        snapshot.clear()
        assert len(store) == 1

    def test_initial_widgets(self):
        store = WidgetStore([_w("a", z_index=15), _w("b")])
        assert [w.id for w in store.widgets] == ["a", "b"]
        assert store.get("b").z_index == 16
        assert store.max_z == 16

    def test_initial_widgets_get_unique_z(self):
        store = WidgetStore([_w("a"), _w("b"), _w("c", z_index=11), _w("d", z_index=11)])
        z_values = [w.z_index for w in store.widgets]
        assert len(set(z_values)) == 4
        assert all(z > 0 for z in z_values)

    def test_add_reassigns_taken_z(self, store):
        store.add(_w("a", z_index=20))
        clash = store.add(_w("b", z_index=20))
        assert clash.z_index == 21
        assert store.get("a").z_index == 20

    def test_add_same_id_keeps_its_z(self, store):
        store.add(_w("a", z_index=20))
        assert store.add(_w("a", z_index=20, x=5)).z_index == 20


class TestReservations:

    def test_reservations_accumulate_within_batch(self, store):
        first = store.reserve_spot("x")
        second = store.reserve_spot("y")
        assert (first.x, first.y) == (100, 100)
        assert (second.x, second.y) == (570, 100)
        assert [s.widget_id for s in store.reserved_spots] == ["x", "y"]

    @pytest.mark.parametrize("mutate", [
        lambda s: s.add(_w("new")),
        lambda s: s.remove("a"),
        lambda s: s.resize("a", 100, 100),
        lambda s: s.move("a", 10, 10),
        lambda s: s.auto_layout(1920),
        lambda s: s.clear(),
    ])
    def test_widget_list_change_drops_reservations(self, store, mutate):
        store.add(_w("a", x=100, y=100))
        store.reserve_spot()
        mutate(store)
        assert store.reserved_spots == []

    def test_committed_widget_takes_reserved_cell(self, store):
        spot = store.reserve_spot("a")
        store.add(_w("a", x=spot.x, y=spot.y))
        follow = store.reserve_spot("b")
        assert (follow.x, follow.y) == (570, 100)


class TestMutations:

    def test_remove(self, store):
        store.add(_w("a"))
        assert store.remove("a") is True
        assert store.remove("a") is False
        assert len(store) == 0

    def test_update_source_keeps_geometry(self, store):
        store.add(_w("a", x=10, y=20, z_index=12))
        updated = store.update_source("a", "new src", "new prompt")
        assert (updated.x, updated.y, updated.z_index) == (10, 20, 12)
        assert updated.source_code == "new src"
        assert updated.prompt_text == "new prompt"

    def test_resize_and_move(self, store):
        store.add(_w("a"))
        store.resize("a", 640, 480)
        store.move("a", 5, 6)
        widget = store.get("a")
        assert (widget.x, widget.y, widget.width, widget.height) == (5, 6, 640, 480)

    def test_mutating_unknown_raises(self, store):
        with pytest.raises(WidgetNotFound):
            store.resize("ghost", 1, 1)

    def test_next_z_is_monotonic(self, store):
        assert store.next_z() == INITIAL_MAX_Z + 1
        assert store.next_z() == INITIAL_MAX_Z + 2


class TestZOrder:

    def test_bring_to_front(self, store):
        store.add(_w("a", z_index=store.next_z()))
        store.add(_w("b", z_index=store.next_z()))
        front = store.bring_to_front("a")
        assert front.z_index > store.get("b").z_index
        assert front.z_index == store.max_z

    def test_bring_to_front_is_noop_for_topmost(self, store):
        store.add(_w("a", z_index=store.next_z()))
        before = store.max_z
        store.bring_to_front("a")
        assert store.max_z == before

    def test_toggle_expand_raises_widget(self, store):
        store.add(_w("a", z_index=store.next_z()))
        store.add(_w("b", z_index=store.next_z()))
        expanded = store.toggle_expand("a")
        assert expanded.expanded is True
        assert expanded.z_index == store.max_z
        assert store.toggle_expand("a").expanded is False


class TestReorderAndReplace:

    def test_reorder_partial(self, store):
        for wid in "abcd":
            store.add(_w(wid))
        assert [w.id for w in store.reorder(["c", "a"])] == ["c", "a", "b", "d"]

    def test_reorder_ignores_duplicates(self, store):
        for wid in "ab":
            store.add(_w(wid))
        assert [w.id for w in store.reorder(["b", "b", "a"])] == ["b", "a"]

    def test_reorder_unknown_raises_and_keeps_order(self, store):
        for wid in "ab":
            store.add(_w(wid))
        with pytest.raises(WidgetNotFound):
            store.reorder(["b", "zzz"])
        assert [w.id for w in store.widgets] == ["a", "b"]

    def test_replace_all_assigns_unique_z(self, store):
        store.add(_w("old"))
        widgets = store.replace_all([_w("a", z_index=11), _w("b", z_index=11), _w("c")])
        assert [w.id for w in widgets] == ["a", "b", "c"]
        z_values = [w.z_index for w in widgets]
        assert len(set(z_values)) == 3
        assert all(z > 0 for z in z_values)
