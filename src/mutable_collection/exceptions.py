"""Exceptions raised by observable collections and indexed nodes.

Every error in this module derives from `CollectionError`, so callers can catch
that one class to handle any failure coming from the library. Each concrete
error also derives from the closest built-in exception (`IndexError`,
`TypeError`, ...), which keeps `except IndexError:` style code working.

All of these errors signal a programming mistake (a bad path, a wrong type
assumption, using a closed collection). None of them are retried internally.
"""

from typing import Any, Optional, Sequence, Tuple


class CollectionError(Exception):
    """Base class for all errors raised by the mutable_collection library."""
    def __init__(self, message: str, path: Optional[Sequence[int]] = None):
        super().__init__(message)
        self.path: Optional[Tuple[int, ...]] = tuple(path) if path is not None else None

    def __str__(self) -> str:
        """Provide a more informative string representation."""
        parts = [super().__str__()]
        if self.path:
            parts.append(f"Path: {list(self.path)}")
        return ". ".join(parts)


class EmptyPathError(CollectionError, ValueError):
    """Raised when a path-addressed operation receives a zero-length path.

    Paths must contain at least one index: the last component addresses the
    target inside its parent node. This check happens before any traversal.
    """
    def __init__(self, message: str = "Got an index path of length 0."):
        super().__init__(message)


class IndexOutOfRangeError(CollectionError, IndexError):
    """Raised when an index falls outside the valid bounds of a node.

    Attributes:
        index (int): The offending index.
        length (int): The length of the node's sequence at the time of the check.
        path (Optional[Tuple[int, ...]]): The full path being resolved, if any.
    """
    def __init__(self, index: int, length: int, path: Optional[Sequence[int]] = None):
        self.index = index
        self.length = length
        super().__init__(f"Index {index} is out of range for a sequence of length {length}", path=path)


class NotASectionError(CollectionError, TypeError):
    """Raised when a non-terminal path component addresses a plain value.

    Only nested nodes can be descended into. If `path[0]` of a multi-component
    path points at a plain element, traversal stops with this error.

    Attributes:
        type_name (str): Name of the type found at the offending position.
    """
    def __init__(self, type_name: str, path: Optional[Sequence[int]] = None):
        self.type_name = type_name
        super().__init__(f"Can't get child of an element of type {type_name}", path=path)


class ElementTypeMismatchError(CollectionError, TypeError):
    """Raised when inserting an element whose type the target node does not accept.

    Attributes:
        element_type (str): Name of the rejected element's type.
        node_type (str): Description of the types the node accepts.
    """
    def __init__(self, element_type: str, node_type: str, path: Optional[Sequence[int]] = None):
        self.element_type = element_type
        self.node_type = node_type
        super().__init__(
            f"Attempt to insert element of type {element_type} in a node of type {node_type}",
            path=path,
        )


class TypeMismatchError(CollectionError, TypeError):
    """Raised when a retrieved or removed element is not of the requested type.

    Attributes:
        type_name (str): Name of the element's actual type.
        target_type (str): Name of the type the caller asked for.
    """
    def __init__(self, type_name: str, target_type: str, path: Optional[Sequence[int]] = None):
        self.type_name = type_name
        self.target_type = target_type
        super().__init__(f"Cannot cast value of type {type_name} to {target_type}", path=path)


class CollectionClosedError(CollectionError, RuntimeError):
    """Raised when mutating an `ObservableCollection` after `close()` was called."""
    def __init__(self, collection_id: Any = None):
        self.collection_id = collection_id
        super().__init__(f"Collection {collection_id} is closed and can no longer be mutated.")
