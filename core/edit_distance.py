"""Levenshtein edit distance used for typo tolerance."""

from __future__ import annotations

from typing import List


def levenshtein(first: str, second: str) -> int:
    """Return the edit distance between ``first`` and ``second``.

    Insertions, deletions and substitutions all cost 1. The full
    ``(len(first) + 1) x (len(second) + 1)`` table is built; callers gate on
    string length before calling this for long inputs.
    """

    rows = len(first)
    cols = len(second)
    if rows == 0:
        return cols
    if cols == 0:
        return rows

    table: List[List[int]] = [[0] * (cols + 1) for _ in range(rows + 1)]
    for i in range(rows + 1):
        table[i][0] = i
    for j in range(cols + 1):
        table[0][j] = j

    for i in range(1, rows + 1):
        for j in range(1, cols + 1):
            cost = 0 if first[i - 1] == second[j - 1] else 1
            table[i][j] = min(
                table[i - 1][j] + 1,
                table[i][j - 1] + 1,
                table[i - 1][j - 1] + cost,
            )

    return table[rows][cols]


__all__ = ["levenshtein"]
