"""Stores the version number for the mutable_collection library.

This module simply defines the `__version__` constant, which contains the
current version string for the `mutable-collection-py` package. This is used
during package building.
"""

# The single source of truth for the package version.
__version__ = "0.1.0"
