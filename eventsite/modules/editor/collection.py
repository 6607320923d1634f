"""Ordered, id-keyed item list behind the sortable editor panels"""
import uuid
from typing import Any, Dict, Iterable, Iterator, List, Optional


def new_item_id() -> str:
    return f"item_{uuid.uuid4().hex[:12]}"


def array_move(items: List[Any], source: int, target: int) -> List[Any]:
    """Copy of items with items[source] moved to target; everything else keeps its relative order"""
    moved = list(items)
    moved.insert(target, moved.pop(source))
    return moved


class SortableCollection:
    def __init__(self, items: Iterable[Dict[str, Any]] = ()):
        self._items: List[Dict[str, Any]] = []
        self.replace(items)

    def replace(self, items: Iterable[Dict[str, Any]]) -> None:
        """Replace every item, keeping the given order"""
        self._items = []
        for item in items:
            self._items.append(self._with_unique_id(dict(item)))

    def _with_unique_id(self, item: Dict[str, Any]) -> Dict[str, Any]:
        if not item.get("id") or str(item["id"]) in self.ids():
            item["id"] = new_item_id()
        item["id"] = str(item["id"])
        return item

    @property
    def items(self) -> List[Dict[str, Any]]:
        return [dict(item) for item in self._items]

    def ids(self) -> List[str]:
        return [item["id"] for item in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self.items)

    def index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item["id"] == item_id:
                return index
        raise KeyError(item_id)

    def get(self, item_id: str) -> Dict[str, Any]:
        return dict(self._items[self.index_of(item_id)])

    def append(self, fields: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.insert(len(self._items), fields)

    def insert(self, index: int, fields: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not 0 <= index <= len(self._items):
            raise IndexError(f"Insert position {index} out of range")
        item = self._with_unique_id(dict(fields or {}))
        self._items.insert(index, item)
        return dict(item)

    def duplicate(self, item_id: str) -> Dict[str, Any]:
        """Copy the item under a new id, directly after the original"""
        index = self.index_of(item_id)
        copy = dict(self._items[index])
        copy["id"] = new_item_id()
        self._items.insert(index + 1, copy)
        return dict(copy)

    def remove(self, item_id: str) -> Dict[str, Any]:
        return self._items.pop(self.index_of(item_id))

    def update(self, item_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow merge fields into the item; the id never changes"""
        index = self.index_of(item_id)
        updated = {**self._items[index], **{k: v for k, v in fields.items() if k != "id"}}
        self._items[index] = updated
        return dict(updated)

    def move(self, source: int, target: int) -> None:
        size = len(self._items)
        if not (0 <= source < size and 0 <= target < size):
            raise IndexError(f"Move {source} -> {target} out of range for {size} item(s)")
        if source == target:
            return
        self._items = array_move(self._items, source, target)

    def move_up(self, item_id: str) -> bool:
        index = self.index_of(item_id)
        if index == 0:
            return False
        self.move(index, index - 1)
        return True

    def move_down(self, item_id: str) -> bool:
        index = self.index_of(item_id)
        if index == len(self._items) - 1:
            return False
        self.move(index, index + 1)
        return True

    def apply_drag_end(self, active_id: str, over_id: Optional[str]) -> bool:
        """Translate a drag-end event into one move; dropping outside a target or onto itself is a no-op"""
        if over_id is None or active_id == over_id:
            return False
        self.move(self.index_of(active_id), self.index_of(over_id))
        return True
