from __future__ import annotations

from grpcexp.core.schema import Kind, map_of, scalar
from grpcexp.form.field import Field, build_field
from grpcexp.form.keys import KeyEvent
from grpcexp.form.mapping import DUPLICATE_NOTICE, FieldMap, MapFocus
from grpcexp.form.styles import render_text

ENTER = KeyEvent("enter")


def _labels_map() -> Field:
    field = build_field(map_of("labels", scalar("k", Kind.STRING), scalar("v", Kind.STRING)))
    field.focus()
    return field


def _put(entries: FieldMap, key: str, value: str) -> None:
    entry = entries.add_entry()
    entry.key.text.set_value(key)
    entry.value.text.set_value(value)


def test_entry_editors_are_named_key_and_value() -> None:
    field = _labels_map()
    field.handle_key(ENTER)
    entry = field.entries.entries[0]
    assert (entry.key.name, entry.value.name) == ("key", "value")
    assert field.entries.target is MapFocus.ADD


def test_value_collects_entries() -> None:
    field = _labels_map()
    field.handle_key(ENTER)
    field.next()
    for char in "a":
        field.update(KeyEvent(char))
    field.next()
    field.update(KeyEvent("1"))
    assert field.value() == {"a": "1"}


def test_duplicate_keys_last_entry_wins() -> None:
    field = _labels_map()
    entries = field.entries
    _put(entries, "a", "1")
    _put(entries, "b", "x")
    _put(entries, "a", "2")
    assert field.value() == {"a": "2", "b": "x"}
    assert entries.duplicate_keys() == {"a"}
    assert render_text(entries.render(0)).count(DUPLICATE_NOTICE) == 2


def test_traversal_and_symmetry() -> None:
    field = _labels_map()
    entries = field.entries
    _put(entries, "a", "1")
    _put(entries, "b", "2")
    seen = [(entries.target, entries.focus_index)]
    while field.next():
        seen.append((entries.target, entries.focus_index))
    assert seen == [
        (MapFocus.ADD, 0),
        (MapFocus.KEY, 0),
        (MapFocus.VALUE, 0),
        (MapFocus.REMOVE, 0),
        (MapFocus.KEY, 1),
        (MapFocus.VALUE, 1),
        (MapFocus.REMOVE, 1),
    ]

    back = [(entries.target, entries.focus_index)]
    while field.prev():
        back.append((entries.target, entries.focus_index))
    assert back == list(reversed(seen))


def test_editor_focus_follows_target() -> None:
    field = _labels_map()
    entries = field.entries
    _put(entries, "a", "1")
    field.next()
    entry = entries.entries[0]
    assert entry.key.text.focused and not entry.value.text.focused
    field.next()
    assert not entry.key.text.focused and entry.value.text.focused
    field.next()
    assert not entry.value.text.focused


def test_remove_button_and_focus_bookkeeping() -> None:
    field = _labels_map()
    entries = field.entries
    _put(entries, "a", "1")
    _put(entries, "b", "2")
    _put(entries, "c", "3")
    while (entries.target, entries.focus_index) != (MapFocus.KEY, 2):
        assert field.next()

    entries.remove_entry(0)
    assert (entries.target, entries.focus_index) == (MapFocus.KEY, 1)
    assert entries.current().value() == "c"

    field.next()
    field.next()
    field.handle_key(ENTER)
    assert field.value() == {"b": "2"}
    assert (entries.target, entries.focus_index) == (MapFocus.REMOVE, 0)


def test_removing_focused_entry_blurs_editor() -> None:
    field = _labels_map()
    entries = field.entries
    _put(entries, "a", "1")
    field.next()
    key_editor = entries.entries[0].key
    entries.remove_entry(0)
    assert not key_editor.text.focused
    assert entries.target is MapFocus.ADD
    assert field.value() == {}


def test_horizontal_keys_between_value_and_remove() -> None:
    field = build_field(map_of("flags", scalar("k", Kind.INT, "int32"), scalar("v", Kind.BOOL)))
    field.focus()
    field.handle_key(ENTER)
    entries = field.entries
    field.next()
    # the integer key editor keeps arrows for its cursor
    _, consumed = field.handle_key(KeyEvent("right"))
    assert not consumed
    assert entries.target is MapFocus.KEY

    field.next()
    _, consumed = field.handle_key(KeyEvent("right"))
    assert consumed
    assert field.value() == {"": "true"}

    field.next()
    assert entries.target is MapFocus.REMOVE
    _, consumed = field.handle_key(KeyEvent("left"))
    assert consumed
    assert entries.target is MapFocus.VALUE


def test_render_layout() -> None:
    field = _labels_map()
    _put(field.entries, "a", "1")
    lines = field.entries.render(0)
    texts = [line.text for line in lines]
    assert texts[0] == "> [+] Add"
    assert texts[1].strip() == "[0]:"
    assert texts[2].strip() == "key: a"
    assert texts[3].strip() == "value: 1"
    assert texts[4].strip() == "[-] Remove"
