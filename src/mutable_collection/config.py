"""Configuration defaults for observable collections.

This module defines the `CollectionConfig` data class and manages the
module-wide default that new `ObservableCollection` instances pick up when no
explicit config is passed to them.

The primary components are:

- `CollectionConfig`: A data class holding behaviour switches for a single
  collection (change-stream replay, element type checks, snapshot logging).
- `DEFAULT_CONFIG`: The built-in defaults.
- Functions to read and replace the process-wide default config.
"""
from dataclasses import dataclass
from typing import Optional

@dataclass(frozen=True)
class CollectionConfig:
    """Data class representing the behaviour switches of an `ObservableCollection`.

    Attributes:
        replay_changes (bool): If `True`, new subscribers of the `flat_changes`
            and `changes` streams immediately receive the most recent change
            event (like the value stream does). Defaults to `False`.
        check_element_types (bool): If `True`, nodes that declare an
            `element_type` reject insertions of other types with
            `ElementTypeMismatchError`. Defaults to `True`.
        log_snapshots (bool): If `True`, every published snapshot is also written
            to the debug log. Handy when tracing, noisy for large collections.
            Defaults to `False`.
    """
    replay_changes: bool = False
    check_element_types: bool = True
    log_snapshots: bool = False

DEFAULT_CONFIG = CollectionConfig()

# This global variable stores the config set through set_default_config().
# If None, DEFAULT_CONFIG is used.
_user_default_config: Optional[CollectionConfig] = None

def get_default_config() -> CollectionConfig:
    """Returns the config new collections use when none is given explicitly.

    Returns:
        CollectionConfig: The config set via `set_default_config()`, or
        `DEFAULT_CONFIG` if none was set.
    """
    if _user_default_config is None:
        return DEFAULT_CONFIG
    return _user_default_config

def set_default_config(config: Optional[CollectionConfig]) -> None:
    """Sets or clears the process-wide default config.

    Collections read the default once, at construction time. Changing it later
    does not affect existing instances.

    Args:
        config (Optional[CollectionConfig]): The new default. `None` restores
            `DEFAULT_CONFIG`.

    Raises:
        TypeError: If `config` is neither `None` nor a `CollectionConfig`.
    """
    global _user_default_config
    if config is not None and not isinstance(config, CollectionConfig):
        raise TypeError(
            "Invalid config provided to set_default_config(). "
            f"Expected CollectionConfig or None, got {type(config).__name__}."
        )
    _user_default_config = config
