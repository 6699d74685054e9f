"""Nested, index-addressable containers.

An `IndexedNode` holds an ordered sequence whose elements are either plain
values or further `IndexedNode` instances. Elements are addressed by an *index
path*: a non-empty sequence of integers where every component but the last
selects a child node, and the last component selects the position inside that
final node.

    >>> inner = IndexedNode(["t1", "t2"], element_type=str)
    >>> root = IndexedNode([inner, "loose"])
    >>> root.get([0, 1])
    't2'
    >>> root.insert("t3", [0, 2])
    >>> inner.items
    ['t1', 't2', 't3']

Each element is stored in a `Slot` tagged with a `SlotKind` when it enters the
node. Path traversal only descends into `SlotKind.NODE` slots; reaching a
`SlotKind.VALUE` slot with path components left raises `NotASectionError`.

A node exclusively owns its children. Paths only ever descend, so there are no
cycles to guard against.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple, Type, Union

from . import logger
from .exceptions import (
    ElementTypeMismatchError,
    IndexOutOfRangeError,
    NotASectionError,
    TypeMismatchError,
)
from .utils import normalize_path

ElementType = Union[Type[Any], Tuple[Type[Any], ...]]


class SlotKind(Enum):
    """Tag telling whether a slot holds a plain value or a nested node."""
    VALUE = auto()
    NODE = auto()


@dataclass(frozen=True)
class Slot:
    """One position of an `IndexedNode`: a tag plus the stored content."""
    kind: SlotKind
    content: Any

    @classmethod
    def wrap(cls, element: Any) -> "Slot":
        """Tags `element` once, when it is stored."""
        if isinstance(element, IndexedNode):
            return cls(SlotKind.NODE, element)
        return cls(SlotKind.VALUE, element)


def _type_name(element_type: Optional[ElementType]) -> str:
    if element_type is None:
        return "Any"
    if isinstance(element_type, tuple):
        return " | ".join(t.__name__ for t in element_type)
    return element_type.__name__


class IndexedNode:
    """An ordered container of values and nested nodes, addressable by index paths.

    Args:
        items: Initial elements. `IndexedNode` instances among them become
            nested children.
        element_type: Optional type (or tuple of types) every element of this
            node must be an instance of. `None` accepts anything.

    Raises:
        ElementTypeMismatchError: If an initial item is not an `element_type`.
    """

    def __init__(self, items: Iterable[Any] = (), element_type: Optional[ElementType] = None):
        self._element_type = element_type
        items = list(items)
        for item in items:
            self.check_element(item, None)
        self._slots: List[Slot] = [Slot.wrap(item) for item in items]

    # --- Read access ---

    @property
    def element_type(self) -> Optional[ElementType]:
        """The type (or types) this node accepts, or `None` for any."""
        return self._element_type

    @property
    def items(self) -> List[Any]:
        """A shallow copy of this node's elements, nested nodes included as-is."""
        return [slot.content for slot in self._slots]

    @property
    def count(self) -> int:
        return len(self._slots)

    @property
    def slots(self) -> Tuple[Slot, ...]:
        return tuple(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index: int) -> Any:
        return self._slots[index].content

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __eq__(self, other: Any) -> bool:
        """Nodes are equal when their items are equal; `element_type` is ignored."""
        if isinstance(other, IndexedNode):
            return self.items == other.items
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"IndexedNode({self.items!r})"

    def accepts(self, element: Any) -> bool:
        """Returns whether `element` may be stored in this node."""
        return self._element_type is None or isinstance(element, self._element_type)

    def copy(self) -> "IndexedNode":
        """Returns a structural copy: nested nodes are copied, plain values shared."""
        duplicate = IndexedNode(element_type=self._element_type)
        # No element checks: this content is already stored in self.
        duplicate._slots = [Slot.wrap(item) for item in self.snapshot()]
        return duplicate

    def snapshot(self) -> List[Any]:
        """Returns the items as a new list, with nested nodes replaced by copies."""
        return [slot.content.copy() if slot.kind is SlotKind.NODE else slot.content for slot in self._slots]

    def to_list(self) -> List[Any]:
        """Returns the content as plain nested lists."""
        return [slot.content.to_list() if slot.kind is SlotKind.NODE else slot.content for slot in self._slots]

    # --- Path traversal ---

    def check_element(self, element: Any, path: Optional[Sequence[int]] = None) -> None:
        """Raises `ElementTypeMismatchError` unless this node accepts `element`."""
        if not self.accepts(element):
            raise ElementTypeMismatchError(type(element).__name__, _type_name(self._element_type), path=path)

    def _check_index(self, index: int, path: Sequence[int], allow_end: bool = False) -> None:
        # allow_end permits index == len (insert/append position).
        upper = len(self._slots) if allow_end else len(self._slots) - 1
        if index < 0 or index > upper:
            raise IndexOutOfRangeError(index, len(self._slots), path=path)

    def _resolve(self, path: Tuple[int, ...]) -> Tuple["IndexedNode", int]:
        """Descends to the node owning the last path component.

        Returns the owning node and the terminal index. The terminal index
        itself is not bounds-checked here since valid bounds depend on the
        operation.
        """
        node = self
        for index in path[:-1]:
            node._check_index(index, path)
            slot = node._slots[index]
            if slot.kind is not SlotKind.NODE:
                logger.debug(f"Path {list(path)} descends into a {type(slot.content).__name__} value")
                raise NotASectionError(type(slot.content).__name__, path=path)
            node = slot.content
        return node, path[-1]

    @staticmethod
    def _cast(value: Any, as_type: Optional[Type[Any]], path: Sequence[int]) -> Any:
        if as_type is not None and not isinstance(value, as_type):
            raise TypeMismatchError(type(value).__name__, _type_name(as_type), path=path)
        return value

    # --- Path-addressed operations ---

    def get(self, path: Iterable[int], as_type: Optional[Type[Any]] = None) -> Any:
        """Returns the element at `path`.

        Args:
            path: Non-empty index path.
            as_type: If given, the element must be an instance of this type.

        Raises:
            EmptyPathError: If `path` is empty.
            IndexOutOfRangeError: If a component is outside its node's bounds.
            NotASectionError: If a non-terminal component addresses a plain value.
            TypeMismatchError: If the element is not an `as_type`.
        """
        path = normalize_path(path)
        node, index = self._resolve(path)
        node._check_index(index, path)
        return self._cast(node._slots[index].content, as_type, path)

    def insert(self, element: Any, path: Iterable[int], check_type: bool = True) -> None:
        """Inserts `element` so that it ends up at `path`.

        The terminal index may equal the target node's length, which appends.
        Later elements shift right.

        Raises:
            EmptyPathError: If `path` is empty.
            IndexOutOfRangeError: If a component is outside its node's bounds.
            NotASectionError: If a non-terminal component addresses a plain value.
            ElementTypeMismatchError: If `check_type` is set and the target node
                does not accept `element`.
        """
        path = normalize_path(path)
        node, index = self._resolve(path)
        node._check_index(index, path, allow_end=True)
        if check_type:
            node.check_element(element, path)
        node._slots.insert(index, Slot.wrap(element))

    def remove(self, path: Iterable[int], as_type: Optional[Type[Any]] = None) -> Any:
        """Removes and returns the element at `path`. Later elements shift left.

        The `as_type` check happens before the element is removed, so a
        `TypeMismatchError` leaves the node untouched.

        Raises:
            EmptyPathError: If `path` is empty.
            IndexOutOfRangeError: If a component is outside its node's bounds.
            NotASectionError: If a non-terminal component addresses a plain value.
            TypeMismatchError: If the element is not an `as_type`.
        """
        path = normalize_path(path)
        node, index = self._resolve(path)
        node._check_index(index, path)
        self._cast(node._slots[index].content, as_type, path)
        return node._slots.pop(index).content

    def replace(self, element: Any, path: Iterable[int], check_type: bool = True) -> Any:
        """Swaps the element at `path` for `element` and returns the old one.

        Equivalent to `remove(path)` followed by `insert(element, path)`, but
        every check runs before anything changes.
        """
        path = normalize_path(path)
        node, index = self._resolve(path)
        node._check_index(index, path)
        if check_type:
            node.check_element(element, path)
        old = node._slots[index].content
        node._slots[index] = Slot.wrap(element)
        return old

    def move(self, from_path: Iterable[int], to_path: Iterable[int], check_type: bool = True) -> Any:
        """Moves the element at `from_path` so that it ends up at `to_path`.

        `to_path` is resolved after the element has been taken out, exactly as
        if `remove(from_path)` and `insert(element, to_path)` ran back to back.
        If the insertion fails the element is put back where it was before the
        error propagates.

        Returns:
            The moved element.
        """
        from_path = normalize_path(from_path)
        to_path = normalize_path(to_path)
        element = self.remove(from_path)
        try:
            self.insert(element, to_path, check_type=check_type)
        except Exception:
            self.insert(element, from_path, check_type=False)
            raise
        return element

    # --- Whole-sequence operations (used by the collection's flat API) ---

    def replace_items(self, items: Iterable[Any], check_type: bool = True) -> None:
        """Replaces all elements of this node at once."""
        items = list(items)
        if check_type:
            for index, item in enumerate(items):
                self.check_element(item, (index,))
        self._slots = [Slot.wrap(item) for item in items]

    def extend(self, items: Iterable[Any], check_type: bool = True) -> None:
        """Appends all `items`. Nothing is appended unless every item is accepted."""
        items = list(items)
        if check_type:
            for offset, item in enumerate(items):
                self.check_element(item, (len(self._slots) + offset,))
        self._slots.extend(Slot.wrap(item) for item in items)

    def clear(self) -> List[Any]:
        """Removes every element and returns them in their former order."""
        removed = self.items
        self._slots = []
        return removed
