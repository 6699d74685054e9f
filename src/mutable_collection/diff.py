"""Sequence diffing based on the longest common subsequence.

`diff(a, b)` returns the ordered list of `FlatRemove` / `FlatInsert` changes
that turns sequence `a` into sequence `b`. Elements are matched by equality
(`==`) only, never by identity.

Index conventions of the returned edit script:

*   `FlatRemove.index` is the element's position in the *old* sequence `a`.
*   `FlatInsert.index` is the element's position in the *new* sequence `b`.

So the script can be replayed by performing all removals from the highest index
down, then all insertions from the lowest index up. `apply_changes()` does exactly
that.

Example:
    >>> diff(["t0", "t1", "t2", "t3"], ["t1", "t2c", "t3", "t4"])
    [FlatRemove(index=0, element='t0'), FlatRemove(index=2, element='t2'), FlatInsert(index=1, element='t2c'), FlatInsert(index=3, element='t4')]
"""

from typing import Any, Iterable, List, Sequence, Union

from . import logger
from .changes import FlatChange, FlatInsert, FlatRemove


def build_lcs_table(a: Sequence[Any], b: Sequence[Any]) -> List[List[int]]:
    """Builds the longest-common-subsequence length table for `a` and `b`.

    `table[i][j]` holds the LCS length of `a[:i]` and `b[:j]`. Row 0 and column 0
    are all zeros.

    Args:
        a: The old sequence.
        b: The new sequence.

    Returns:
        List[List[int]]: A `(len(a) + 1) x (len(b) + 1)` table.
    """
    n, m = len(a), len(b)
    table = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(1, n + 1):
        previous_row = table[i - 1]
        row = table[i]
        for j in range(1, m + 1):
            if a[i - 1] == b[j - 1]:
                row[j] = previous_row[j - 1] + 1
            else:
                row[j] = max(previous_row[j], row[j - 1])
    return table


def diff(a: Sequence[Any], b: Sequence[Any]) -> List[FlatChange]:
    """Computes a minimal edit script transforming `a` into `b`.

    The LCS table is walked back from `(len(a), len(b))` to `(0, 0)`. When a
    step could be either an insertion or a removal at equal cost, the insertion
    wins. That tie-break fixes the exact output for sequences with several
    equally short scripts, and callers rely on it being stable.

    Args:
        a: The old sequence. Elements must support `==`.
        b: The new sequence.

    Returns:
        List[FlatChange]: Removals and insertions in forward application order.
        Identical inputs give an empty list.
    """
    table = build_lcs_table(a, b)
    changes: List[FlatChange] = []
    i, j = len(a), len(b)
    # Walk back through the table; steps are collected in reverse order.
    while i > 0 or j > 0:
        if i == 0:
            changes.append(FlatInsert(j - 1, b[j - 1]))
            j -= 1
        elif j == 0:
            changes.append(FlatRemove(i - 1, a[i - 1]))
            i -= 1
        elif table[i][j] == table[i][j - 1]:
            changes.append(FlatInsert(j - 1, b[j - 1]))
            j -= 1
        elif table[i][j] == table[i - 1][j]:
            changes.append(FlatRemove(i - 1, a[i - 1]))
            i -= 1
        else:
            # a[i-1] == b[j-1]: part of the common subsequence, left untouched.
            i -= 1
            j -= 1
    changes.reverse()
    logger.debug(f"diff: {len(a)} -> {len(b)} elements, {len(changes)} changes (lcs={table[-1][-1]})")
    return changes


def apply_changes(sequence: Sequence[Any], changes: Union[FlatChange, Iterable[FlatChange]]) -> List[Any]:
    """Replays a flat edit script onto a copy of `sequence`.

    Composites are flattened first. Removals are then applied by their index in
    the old sequence, highest first, and insertions by their index in the new
    sequence, lowest first. This reproduces `b` from `a` for any
    `diff(a, b)`, and also replays the composites emitted by
    `ObservableCollection` (moves, range replacements, `remove_all`).

    Args:
        sequence: The sequence the changes were computed against. Not modified.
        changes: A single `FlatChange` or an iterable of them.

    Returns:
        List[Any]: A new list with the changes applied.

    Raises:
        IndexError: If a change does not fit the sequence.
    """
    if isinstance(changes, FlatChange):
        changes = [changes]
    leaves = [leaf for change in changes for leaf in change.leaves()]
    removals = sorted((c for c in leaves if isinstance(c, FlatRemove)), key=lambda c: c.index, reverse=True)
    insertions = sorted((c for c in leaves if isinstance(c, FlatInsert)), key=lambda c: c.index)

    result = list(sequence)
    for removal in removals:
        if not 0 <= removal.index < len(result):
            raise IndexError(f"Removal index {removal.index} out of range for length {len(result)}")
        del result[removal.index]
    for insertion in insertions:
        if not 0 <= insertion.index <= len(result):
            raise IndexError(f"Insertion index {insertion.index} out of range for length {len(result)}")
        result.insert(insertion.index, insertion.element)
    return result
