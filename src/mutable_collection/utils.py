"""Internal Utility Functions for the mutable_collection library.

Warning:
    Functions and variables in this module are considered internal implementation
    details. They might change without notice in future versions.
"""

from typing import Iterable, Tuple

from .exceptions import EmptyPathError

# A simple counter shared across the library instance to help generate unique IDs.
_instance_counter = 0

def generate_unique_id(prefix: str) -> str:
    """Generates a simple, sequential unique ID for a collection instance.

    The generated IDs follow a simple "prefix-number" format (e.g.,
    "collection-1"). They show up in events and log lines so output from
    several collections can be told apart.

    Args:
        prefix (str): A descriptive prefix, such as "collection".

    Returns:
        str: A unique identifier string for the new instance.
    """
    global _instance_counter
    _instance_counter += 1
    return f"{prefix}-{_instance_counter}"

def normalize_path(path: Iterable[int]) -> Tuple[int, ...]:
    """Converts an index path to a tuple and checks that it is usable.

    Args:
        path: Any iterable of integer indices.

    Returns:
        Tuple[int, ...]: The path as an immutable tuple.

    Raises:
        EmptyPathError: If the path has no components.
        TypeError: If a component is not an integer (booleans are rejected too).
    """
    normalized = tuple(path)
    if not normalized:
        raise EmptyPathError()
    for component in normalized:
        if isinstance(component, bool) or not isinstance(component, int):
            raise TypeError(f"Path components must be integers, got {type(component).__name__}: {component!r}")
    return normalized
