"""Provides the ObservableCollection class, a list that reports its own mutations.

An `ObservableCollection` owns a root `IndexedNode` and exposes two kinds of
mutations:

*   **Flat operations** on the root sequence (`append`, `insert_at`,
    `remove_at`, `remove_all`, `replace_range`, `move`, assigning `value`, ...).
    Each one produces a `FlatChange` addressed by plain indices.
*   **Path operations** reaching into nested nodes (`insert_at_path`,
    `remove_at_path`, `replace_at_path`, `move_at_path`). Each one produces a
    `DeepChange` addressed by index paths.

How it works:

1.  Wrap your data: `todo = ObservableCollection(["buy milk"])`
2.  Subscribe: `todo.changes.subscribe(render_change)`
3.  Modify the data **through the collection**: `todo.append("call mom")`
4.  Every subscriber of `changes` receives `DeepInsert(path=(1,), element='call mom')`,
    then every subscriber of `value_stream` receives `['buy milk', 'call mom']`.

Assigning a whole new sequence to `value` computes a minimal edit script with
`diff()` and publishes it as one `FlatComposite`, so subscribers can animate
the difference instead of redrawing everything.

All mutating operations are serialized by a per-instance reentrant lock. The
change events of one mutation and its snapshot are delivered before the next
mutation starts.

Note on Limitations:

*   Modifying nested `IndexedNode` objects directly (instead of through the
    collection's path operations) is not observed. Nodes passed to a mutating
    operation are copied on the way in, so the caller's node stays detached.
*   Reading `value` is not synchronized with concurrent writers; subscribe to
    `value_stream` if you need a consistent view while other threads mutate.
"""

import threading
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Type, Union

from . import logger
from .changes import (
    DeepChange,
    DeepComposite,
    DeepInsert,
    DeepRemove,
    FlatChange,
    FlatComposite,
    FlatInsert,
    FlatRemove,
)
from .config import CollectionConfig, get_default_config
from .diff import diff
from .events import CompletedEvent, DeepChangeEvent, FlatChangeEvent, ValueEvent
from .exceptions import CollectionClosedError, IndexOutOfRangeError
from .node import IndexedNode
from .streams import CollectionStreams, EventSink, Stream
from .utils import generate_unique_id, normalize_path


def _adopt(element: Any) -> Any:
    # Incoming nodes are copied so every stored node has exactly one owner.
    if isinstance(element, IndexedNode):
        return element.copy()
    return element


class ObservableCollection:
    """A mutable, possibly nested sequence that publishes every structural change.

    Args:
        initial_value: Either an iterable of elements or an `IndexedNode` to use
            as the root. A root node is taken over as-is; nodes found inside an
            iterable are copied, like every node a mutating operation receives.
        config: Behaviour switches. Defaults to `get_default_config()`.
        sink: Where events go. Defaults to a new `CollectionStreams`, which makes
            `value_stream`, `flat_changes` and `changes` available.
        collection_id: Name used in events and log lines. Generated if omitted.

    Example:
        >>> names = ObservableCollection(["ada", "grace"])
        >>> unsubscribe = names.changes.subscribe(print)
        >>> names.append("linus")
        DeepInsert(path=(2,), element='linus')
        >>> names.value = ["grace", "linus"]
        DeepComposite(changes=(DeepRemove(path=(0,), element='ada'),))
    """

    def __init__(
        self,
        initial_value: Union[Iterable[Any], IndexedNode] = (),
        config: Optional[CollectionConfig] = None,
        sink: Optional[EventSink] = None,
        collection_id: Optional[str] = None,
    ):
        self._config = config if config is not None else get_default_config()
        if isinstance(initial_value, IndexedNode):
            self._root = initial_value
        else:
            self._root = IndexedNode(_adopt(element) for element in initial_value)
        self._sink: EventSink = sink if sink is not None else CollectionStreams(self._config.replay_changes)
        self.collection_id: str = collection_id or generate_unique_id("collection")
        self._lock = threading.RLock()
        self._closed = False
        # Set last: __del__ only completes collections that finished __init__.
        self._completed = False
        logger.debug(f"Created {self.collection_id} with {len(self._root)} elements")

    # --- Streams ---

    @property
    def config(self) -> CollectionConfig:
        return self._config

    @property
    def streams(self) -> CollectionStreams:
        """The default `CollectionStreams` sink.

        Raises:
            AttributeError: If the collection was created with a custom sink.
        """
        if not isinstance(self._sink, CollectionStreams):
            raise AttributeError(
                f"{self.collection_id} publishes to a custom sink of type "
                f"{type(self._sink).__name__}; it has no built-in streams."
            )
        return self._sink

    @property
    def value_stream(self) -> Stream:
        """Snapshots of the root sequence, one per mutation. Replays the latest one."""
        return self.streams.value

    @property
    def flat_changes(self) -> Stream:
        """`FlatChange` objects, for mutations of the root sequence only."""
        return self.streams.flat_changes

    @property
    def changes(self) -> Stream:
        """`DeepChange` objects for every mutation; flat changes arrive promoted."""
        return self.streams.changes

    # --- Lifecycle ---

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Completes all streams. Further mutations raise `CollectionClosedError`.

        Calling `close()` more than once is harmless. Collections that are never
        closed complete their streams when garbage collected, including when
        a subscriber holds a reference back to the collection.
        """
        with self._lock:
            self._closed = True
            self._complete()

    def _complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        logger.debug(f"Completing event streams of {self.collection_id}")
        self._sink.emit(CompletedEvent(self.collection_id, "completed"))

    def __del__(self):
        # Runs for plain refcount drops and for cycles through subscriber callbacks.
        if getattr(self, "_completed", True):
            return
        self._closed = True
        self._complete()

    def __enter__(self) -> "ObservableCollection":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise CollectionClosedError(self.collection_id)

    # --- Dispatching ---

    def _dispatch_flat_change(self, change: FlatChange) -> None:
        self._sink.emit(FlatChangeEvent(self.collection_id, "flat_change", change))
        self._sink.emit(DeepChangeEvent(self.collection_id, "change", change.to_deep()))
        self._dispatch_next_value()

    def _dispatch_deep_change(self, change: DeepChange) -> None:
        self._sink.emit(DeepChangeEvent(self.collection_id, "change", change))
        self._dispatch_next_value()

    def _dispatch_next_value(self) -> None:
        snapshot = self._root.snapshot()
        if self._config.log_snapshots:
            logger.debug(f"{self.collection_id} value: {snapshot!r}")
        self._sink.emit(ValueEvent(self.collection_id, "value", snapshot))

    # --- Read access ---

    @property
    def value(self) -> List[Any]:
        """The current root sequence, as a snapshot.

        Assigning a new sequence replaces the whole content and publishes the
        difference as one `FlatComposite` (see `set_value`).
        """
        return self._root.snapshot()

    @value.setter
    def value(self, new_value: Iterable[Any]) -> None:
        self.set_value(new_value)

    def current_value(self) -> List[Any]:
        """Same as reading `value`."""
        return self._root.snapshot()

    def element_at_path(self, path: Iterable[int], as_type: Optional[Type[Any]] = None) -> Any:
        """Returns the element at `path`, descending into nested nodes.

        Args:
            path: Non-empty index path, e.g. `[0, 2]` for the third element of
                the first nested node.
            as_type: If given, the element must be an instance of this type.

        Raises:
            EmptyPathError, IndexOutOfRangeError, NotASectionError, TypeMismatchError
        """
        return self._root.get(path, as_type=as_type)

    @property
    def count(self) -> int:
        return len(self._root)

    def __len__(self) -> int:
        return len(self._root)

    def __getitem__(self, index: int) -> Any:
        return self._root[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.value)

    def __repr__(self) -> str:
        return f"ObservableCollection({self.value!r})"

    # --- Flat operations ---

    def set_value(self, new_value: Iterable[Any]) -> None:
        """Replaces the whole root sequence and publishes the computed difference.

        The edit script from `diff(old, new)` is only used for notification; the
        root sequence is replaced directly.

        Args:
            new_value: The new elements.

        Raises:
            ElementTypeMismatchError: If the root node has an `element_type` that
                some new element does not match. Nothing changes in that case.
        """
        new_items = list(new_value)
        with self._lock:
            self._ensure_open()
            changes = diff(self._root.items, new_items)
            self._root.replace_items([_adopt(e) for e in new_items], check_type=self._config.check_element_types)
            logger.debug(f"{self.collection_id}: set_value with {len(changes)} changes")
            self._dispatch_flat_change(FlatComposite(changes))

    def insert_at(self, element: Any, index: int) -> None:
        """Inserts `element` at `index` (`0 <= index <= len`), shifting later elements right.

        Raises:
            IndexOutOfRangeError: If `index` is negative or greater than the length.
            ElementTypeMismatchError: If the root node rejects `element`.
        """
        with self._lock:
            self._ensure_open()
            self._root.insert(_adopt(element), (index,), check_type=self._config.check_element_types)
            logger.debug(f"{self.collection_id}: insert_at({index}) {element!r}")
            self._dispatch_flat_change(FlatInsert(index, element))

    def remove_at(self, index: int) -> Any:
        """Removes and returns the element at `index` (`0 <= index < len`).

        Raises:
            IndexOutOfRangeError: If `index` is outside the sequence.
        """
        with self._lock:
            self._ensure_open()
            element = self._root.remove((index,))
            logger.debug(f"{self.collection_id}: remove_at({index}) {element!r}")
            self._dispatch_flat_change(FlatRemove(index, element))
            return element

    def remove_first(self) -> Any:
        """Removes and returns the first element; does nothing on an empty collection.

        Returns:
            The removed element, or `None` if the collection was empty (in which
            case no change is published).
        """
        with self._lock:
            self._ensure_open()
            if len(self._root) == 0:
                return None
            return self.remove_at(0)

    def remove_last(self) -> Any:
        """Removes and returns the last element; does nothing on an empty collection.

        Returns:
            The removed element, or `None` if the collection was empty.
        """
        with self._lock:
            self._ensure_open()
            if len(self._root) == 0:
                return None
            return self.remove_at(len(self._root) - 1)

    def remove_all(self) -> None:
        """Empties the collection.

        Publishes one `FlatComposite` holding a `FlatRemove(i, element)` for every
        former element, in original left-to-right order.
        """
        with self._lock:
            self._ensure_open()
            removed = self._root.clear()
            logger.debug(f"{self.collection_id}: remove_all ({len(removed)} elements)")
            self._dispatch_flat_change(FlatComposite([FlatRemove(i, e) for i, e in enumerate(removed)]))

    def append(self, element: Any) -> None:
        """Adds `element` at the end of the collection."""
        with self._lock:
            self._ensure_open()
            index = len(self._root)
            self._root.insert(_adopt(element), (index,), check_type=self._config.check_element_types)
            logger.debug(f"{self.collection_id}: append {element!r} at {index}")
            self._dispatch_flat_change(FlatInsert(index, element))

    def append_all(self, elements: Iterable[Any]) -> None:
        """Adds all `elements` at the end, publishing one `FlatComposite` of insertions.

        Raises:
            ElementTypeMismatchError: If any element is rejected. Nothing is
                appended in that case.
        """
        new_elements = list(elements)
        with self._lock:
            self._ensure_open()
            start = len(self._root)
            self._root.extend([_adopt(e) for e in new_elements], check_type=self._config.check_element_types)
            logger.debug(f"{self.collection_id}: append_all {len(new_elements)} elements at {start}")
            self._dispatch_flat_change(
                FlatComposite([FlatInsert(start + offset, e) for offset, e in enumerate(new_elements)])
            )

    def replace_range(self, subrange: range, elements: Sequence[Any]) -> None:
        """Overwrites consecutive elements starting at `subrange.start`.

        One position is replaced per supplied element: `elements[k]` takes the
        place of the element at `subrange.start + k`. The published
        `FlatComposite` lists all removals first, then all insertions, each
        group in position order.

        Args:
            subrange: A `range` with step 1 whose start is the first replaced position.
            elements: The replacements.

        Raises:
            ValueError: If `subrange` has a step other than 1.
            IndexOutOfRangeError: If `subrange` or the replaced positions reach
                past the end of the collection. Checked before anything changes.
            ElementTypeMismatchError: If the root node rejects a replacement.
        """
        if subrange.step != 1:
            raise ValueError(f"replace_range() needs a contiguous range, got step {subrange.step}")
        replacements = list(elements)
        with self._lock:
            self._ensure_open()
            length = len(self._root)
            start = subrange.start
            if start < 0:
                raise IndexOutOfRangeError(start, length)
            if subrange.stop > length:
                raise IndexOutOfRangeError(subrange.stop, length)
            if start + len(replacements) > length:
                raise IndexOutOfRangeError(start + len(replacements) - 1, length)
            if self._config.check_element_types:
                for offset, element in enumerate(replacements):
                    self._root.check_element(element, (start + offset,))

            removals: List[FlatChange] = []
            insertions: List[FlatChange] = []
            for offset, element in enumerate(replacements):
                index = start + offset
                replaced = self._root.replace(_adopt(element), (index,), check_type=False)
                removals.append(FlatRemove(index, replaced))
                insertions.append(FlatInsert(index, element))
            logger.debug(f"{self.collection_id}: replace_range({start}, {len(replacements)} elements)")
            self._dispatch_flat_change(FlatComposite(removals + insertions))

    def move(self, from_index: int, to_index: int) -> Any:
        """Moves the element at `from_index` so that it ends up at `to_index`.

        Publishes `FlatComposite([FlatRemove(from_index, e), FlatInsert(to_index, e)])`.

        Returns:
            The moved element.
        """
        with self._lock:
            self._ensure_open()
            element = self._root.move((from_index,), (to_index,), check_type=False)
            logger.debug(f"{self.collection_id}: move {from_index} -> {to_index}")
            self._dispatch_flat_change(FlatComposite([FlatRemove(from_index, element), FlatInsert(to_index, element)]))
            return element

    # --- Path operations ---

    def insert_at_path(self, element: Any, path: Iterable[int]) -> None:
        """Inserts `element` so that it ends up at `path`, possibly inside a nested node.

        Raises:
            EmptyPathError: If `path` is empty (checked before anything else).
            IndexOutOfRangeError, NotASectionError, ElementTypeMismatchError
        """
        path = normalize_path(path)
        with self._lock:
            self._ensure_open()
            self._root.insert(_adopt(element), path, check_type=self._config.check_element_types)
            logger.debug(f"{self.collection_id}: insert_at_path({list(path)}) {element!r}")
            self._dispatch_deep_change(DeepInsert(path, element))

    def remove_at_path(self, path: Iterable[int], as_type: Optional[Type[Any]] = None) -> Any:
        """Removes and returns the element at `path`.

        Args:
            path: Non-empty index path.
            as_type: If given, the element must be an instance of this type;
                otherwise `TypeMismatchError` is raised and nothing is removed.

        Raises:
            EmptyPathError, IndexOutOfRangeError, NotASectionError, TypeMismatchError
        """
        path = normalize_path(path)
        with self._lock:
            self._ensure_open()
            element = self._root.remove(path, as_type=as_type)
            logger.debug(f"{self.collection_id}: remove_at_path({list(path)}) {element!r}")
            self._dispatch_deep_change(DeepRemove(path, element))
            return element

    def replace_at_path(self, element: Any, path: Iterable[int]) -> Any:
        """Replaces the element at `path` with `element` and returns the old one.

        Publishes `DeepComposite([DeepRemove(path, old), DeepInsert(path, element)])`.

        Raises:
            EmptyPathError, IndexOutOfRangeError, NotASectionError, ElementTypeMismatchError
        """
        path = normalize_path(path)
        with self._lock:
            self._ensure_open()
            old = self._root.replace(_adopt(element), path, check_type=self._config.check_element_types)
            logger.debug(f"{self.collection_id}: replace_at_path({list(path)}) {old!r} -> {element!r}")
            self._dispatch_deep_change(DeepComposite([DeepRemove(path, old), DeepInsert(path, element)]))
            return old

    def move_at_path(self, from_path: Iterable[int], to_path: Iterable[int]) -> Any:
        """Moves the element at `from_path` so that it ends up at `to_path`.

        `to_path` is interpreted after the element has been taken out. If the
        element cannot be inserted at `to_path`, it is restored at `from_path`
        and the error propagates without any change being published.

        Publishes `DeepComposite([DeepRemove(from_path, e), DeepInsert(to_path, e)])`.

        Returns:
            The moved element.

        Raises:
            EmptyPathError, IndexOutOfRangeError, NotASectionError, ElementTypeMismatchError
        """
        from_path = normalize_path(from_path)
        to_path = normalize_path(to_path)
        with self._lock:
            self._ensure_open()
            element = self._root.move(from_path, to_path, check_type=self._config.check_element_types)
            logger.debug(f"{self.collection_id}: move_at_path({list(from_path)} -> {list(to_path)}) {element!r}")
            self._dispatch_deep_change(DeepComposite([DeepRemove(from_path, element), DeepInsert(to_path, element)]))
            return element
