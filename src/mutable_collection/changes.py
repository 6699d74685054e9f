"""Change objects describing structural mutations of a collection.

Two families of changes exist:

*   **Flat changes** (`FlatRemove`, `FlatInsert`, `FlatComposite`) locate an
    element by a single integer index into the root sequence. They are produced
    by the top-level list operations (`append`, `insert_at`, assigning `value`,
    ...).
*   **Deep changes** (`DeepRemove`, `DeepInsert`, `DeepComposite`) locate an
    element by a full index path into nested nodes. They are produced by the
    path-addressed operations (`insert_at_path`, `move_at_path`, ...).

A composite groups other changes in the order they must be replayed. Every
flat change has a deep equivalent obtained with `to_deep()`, which wraps each
index into a one-component path.

Example:
    >>> change = FlatComposite([FlatRemove(0, "a"), FlatInsert(0, "b")])
    >>> change.to_deep()
    DeepComposite(changes=(DeepRemove(path=(0,), element='a'), DeepInsert(path=(0,), element='b')))
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterator, Optional, Tuple


class ChangeOperation(Enum):
    """The kind of a single (non-composite) change."""
    INSERTION = auto()
    REMOVAL = auto()

    def __str__(self) -> str:
        return self.name


# --- Flat changes ---

class FlatChange(ABC):
    """Base class for changes addressed by a flat index into the root sequence.

    Concrete subclasses expose `index`, `element` and `operation`. On a
    `FlatComposite` all three are `None`.
    """

    @abstractmethod
    def to_deep(self) -> "DeepChange":
        """Returns the equivalent `DeepChange`, with indices wrapped into paths."""
        pass

    def leaves(self) -> Iterator["FlatChange"]:
        """Yields the non-composite changes contained in this change, in order."""
        yield self


@dataclass(frozen=True)
class FlatRemove(FlatChange):
    """The element previously at `index` was removed."""
    index: int
    element: Any

    @property
    def operation(self) -> ChangeOperation:
        return ChangeOperation.REMOVAL

    def to_deep(self) -> "DeepRemove":
        return DeepRemove((self.index,), self.element)


@dataclass(frozen=True)
class FlatInsert(FlatChange):
    """`element` was inserted so that it now lives at `index`."""
    index: int
    element: Any

    @property
    def operation(self) -> ChangeOperation:
        return ChangeOperation.INSERTION

    def to_deep(self) -> "DeepInsert":
        return DeepInsert((self.index,), self.element)


@dataclass(frozen=True)
class FlatComposite(FlatChange):
    """An ordered group of flat changes applied as one mutation."""
    changes: Tuple[FlatChange, ...] = ()

    def __post_init__(self):
        # Stored as a tuple; callers may pass any iterable.
        object.__setattr__(self, "changes", tuple(self.changes))

    @property
    def index(self) -> Optional[int]:
        return None

    @property
    def element(self) -> Any:
        return None

    @property
    def operation(self) -> Optional[ChangeOperation]:
        return None

    def to_deep(self) -> "DeepComposite":
        return DeepComposite([change.to_deep() for change in self.changes])

    def leaves(self) -> Iterator[FlatChange]:
        for change in self.changes:
            yield from change.leaves()


# --- Deep changes ---

class DeepChange:
    """Base class for changes addressed by a full index path.

    Concrete subclasses expose `path`, `element` and `operation`. On a
    `DeepComposite` all three are `None`.
    """

    def leaves(self) -> Iterator["DeepChange"]:
        """Yields the non-composite changes contained in this change, in order."""
        yield self


@dataclass(frozen=True)
class DeepRemove(DeepChange):
    """The element previously at `path` was removed."""
    path: Tuple[int, ...]
    element: Any

    def __post_init__(self):
        object.__setattr__(self, "path", tuple(self.path))

    @property
    def operation(self) -> ChangeOperation:
        return ChangeOperation.REMOVAL


@dataclass(frozen=True)
class DeepInsert(DeepChange):
    """`element` was inserted so that it now lives at `path`."""
    path: Tuple[int, ...]
    element: Any

    def __post_init__(self):
        object.__setattr__(self, "path", tuple(self.path))

    @property
    def operation(self) -> ChangeOperation:
        return ChangeOperation.INSERTION


@dataclass(frozen=True)
class DeepComposite(DeepChange):
    """An ordered group of deep changes applied as one mutation."""
    changes: Tuple[DeepChange, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "changes", tuple(self.changes))

    @property
    def path(self) -> Optional[Tuple[int, ...]]:
        return None

    @property
    def element(self) -> Any:
        return None

    @property
    def operation(self) -> Optional[ChangeOperation]:
        return None

    def leaves(self) -> Iterator[DeepChange]:
        for change in self.changes:
            yield from change.leaves()


def to_deep(change: FlatChange) -> DeepChange:
    """Converts a flat change into its deep equivalent.

    `FlatRemove(i, e)` becomes `DeepRemove((i,), e)`, `FlatInsert(i, e)` becomes
    `DeepInsert((i,), e)`, and composites are converted recursively, keeping
    their structure and order.

    Args:
        change (FlatChange): The change to convert.

    Returns:
        DeepChange: The structurally identical deep change.

    Raises:
        TypeError: If `change` is not a `FlatChange`.
    """
    if not isinstance(change, FlatChange):
        raise TypeError(f"to_deep() expects a FlatChange, got {type(change).__name__}")
    return change.to_deep()

