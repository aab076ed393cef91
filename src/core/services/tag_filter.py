"""Tag filter over the loaded catalog.

Two states only: with no tags selected every item is visible; with a
non-empty selection an item is visible when it carries *any* selected tag.
Adding a tag therefore broadens the result, never narrows it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Callable, TypeVar

from core.domain.tags import Tagged, normalize_tags

T = TypeVar("T", bound=Tagged)

Listener = Callable[["TagFilter"], None]


def visible_items(items: Sequence[T], selected: Iterable[str]) -> list[T]:
    wanted = set(selected)
    if not wanted:
        return list(items)
    return [item for item in items if wanted.intersection(normalize_tags(item.tags))]


class TagFilter:
    """Mutable tag selection with change notification."""

    def __init__(self, selected: Iterable[str] = ()) -> None:
        self._selected: set[str] = set(selected)
        self._listeners: list[Listener] = []

    @property
    def selected(self) -> frozenset[str]:
        return frozenset(self._selected)

    @property
    def is_filtered(self) -> bool:
        return bool(self._selected)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def toggle_tag(self, tag: str) -> None:
        if tag in self._selected:
            self._selected.discard(tag)
        else:
            self._selected.add(tag)
        self._notify()

    def clear_filters(self) -> None:
        self._selected.clear()
        self._notify()

    def reset(self) -> None:
        """Drop the selection without notifying listeners."""

        self._selected.clear()

    def apply(self, items: Sequence[T]) -> list[T]:
        return visible_items(items, self._selected)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
