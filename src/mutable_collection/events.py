"""Defines the event objects an `ObservableCollection` hands to its event sink.

Every mutation produces, in this order:

1.  a `FlatChangeEvent` (only for mutations of the root sequence),
2.  a `DeepChangeEvent` (always; flat changes are promoted with `to_deep()`),
3.  a `ValueEvent` carrying a fresh snapshot of the root sequence.

Closing the collection produces a single `CompletedEvent`.
"""

from dataclasses import dataclass
from typing import Any, List

from .changes import DeepChange, FlatChange

# --- Base Event Class ---

@dataclass
class BaseCollectionEvent:
    """
    Base class for all collection events.

    Attributes:
        collection_id (str): The id of the `ObservableCollection` that emitted the event.
        type (str): A string naming the event ("flat_change", "change", "value", "completed").
    """
    collection_id: str
    type: str


@dataclass
class FlatChangeEvent(BaseCollectionEvent):
    """
    A mutation of the root sequence, addressed by flat indices.

    Attributes:
        change (FlatChange): The change, possibly a `FlatComposite`.
    """
    change: FlatChange


@dataclass
class DeepChangeEvent(BaseCollectionEvent):
    """
    Any mutation, addressed by index paths.

    Attributes:
        change (DeepChange): The change, possibly a `DeepComposite`.
    """
    change: DeepChange


@dataclass
class ValueEvent(BaseCollectionEvent):
    """
    The full root sequence right after a mutation.

    Attributes:
        value (List[Any]): A snapshot. Nested nodes in it are copies, so later
            mutations of the collection never show through.
    """
    value: List[Any]


@dataclass
class CompletedEvent(BaseCollectionEvent):
    """The collection was closed; no further events follow."""
    pass
