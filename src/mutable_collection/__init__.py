"""mutable_collection: observable, nested, index-addressable collections.

This library provides `ObservableCollection`, a list-like container whose
structural mutations (insert, remove, replace, move) are published as a stream
of change objects while a plain snapshot of the current value stays available.

Key functionalities include:

*   Flat list operations whose changes are addressed by plain indices.
*   Nested collections (`IndexedNode`) whose elements are addressed by index
    paths such as `[0, 2]`.
*   Wholesale replacement (`collection.value = [...]`) that publishes a minimal
    edit script computed by a longest-common-subsequence `diff()`.
*   Three subscriber streams: snapshots, flat changes and deep changes, all
    completed when the collection is closed or garbage collected.

Getting Started:

    1.  **Install:** `pip install mutable-collection-py`.
    2.  **Import:** `from mutable_collection import ObservableCollection`.
    3.  **Create:** `todo = ObservableCollection(["buy milk"])`.
    4.  **Subscribe:** `todo.changes.subscribe(print)`.
    5.  **Mutate through the collection:** `todo.append("call mom")`.
"""

import logging

# --- Version ---
from ._version import __version__

# --- Logging Setup ---
# Configure a logger for the 'mutable_collection' package.
# By default, it uses a NullHandler, so applications using this library
# must configure their own logging if they wish to see its logs.
# Example application setup:
# import logging
# logging.basicConfig(level=logging.DEBUG)
# logging.getLogger("mutable_collection").setLevel(logging.DEBUG)
logger = logging.getLogger("mutable_collection")
if not logger.hasHandlers():
    logger.addHandler(logging.NullHandler())

# --- Exceptions ---
from .exceptions import (
    CollectionError,            # Base class for all library errors.
    EmptyPathError,             # Path-addressed operation got a zero-length path.
    IndexOutOfRangeError,       # Index outside the bounds of a node.
    NotASectionError,           # Path descends into a plain value.
    ElementTypeMismatchError,   # Inserted element rejected by the target node.
    TypeMismatchError,          # Element is not of the requested type.
    CollectionClosedError,      # Mutation attempted after close().
)

# --- Configuration ---
from .config import CollectionConfig, DEFAULT_CONFIG, get_default_config, set_default_config

# --- Changes and diffing ---
from .changes import (
    ChangeOperation,
    FlatChange,
    FlatRemove,
    FlatInsert,
    FlatComposite,
    DeepChange,
    DeepRemove,
    DeepInsert,
    DeepComposite,
    to_deep,
)
from .diff import diff, apply_changes

# --- Nested containers ---
from .node import IndexedNode, Slot, SlotKind

# --- Events and streams ---
from .events import (
    BaseCollectionEvent,
    FlatChangeEvent,
    DeepChangeEvent,
    ValueEvent,
    CompletedEvent,
)
from .streams import EventSink, Stream, CollectionStreams, UnsubscribeFunction

# --- The collection itself ---
from .collection import ObservableCollection


__all__ = [
    # Version
    '__version__',

    # Logger (for users who might want to configure it)
    'logger',

    # Errors
    'CollectionError',
    'EmptyPathError',
    'IndexOutOfRangeError',
    'NotASectionError',
    'ElementTypeMismatchError',
    'TypeMismatchError',
    'CollectionClosedError',

    # Config
    'CollectionConfig',
    'DEFAULT_CONFIG',
    'get_default_config',
    'set_default_config',

    # Changes
    'ChangeOperation',
    'FlatChange',
    'FlatRemove',
    'FlatInsert',
    'FlatComposite',
    'DeepChange',
    'DeepRemove',
    'DeepInsert',
    'DeepComposite',
    'to_deep',
    'diff',
    'apply_changes',

    # Nodes
    'IndexedNode',
    'Slot',
    'SlotKind',

    # Events and streams
    'BaseCollectionEvent',
    'FlatChangeEvent',
    'DeepChangeEvent',
    'ValueEvent',
    'CompletedEvent',
    'EventSink',
    'Stream',
    'CollectionStreams',
    'UnsubscribeFunction',

    # Collection
    'ObservableCollection',
]
