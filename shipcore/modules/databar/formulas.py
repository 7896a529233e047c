"""
Data Bar Formulas

Purpose
-------
Pure functions behind every segmented "token bar" on a ship sheet: hull
points, the ship EP pool, and each crew member's EP. All three bars share
one click rule so they behave identically.

Design Notes
------------
- Pure functions only: no I/O, no config, no logging
- Raw click payloads arrive as strings (or nothing at all); parsing
  degrades to 0 rather than failing

Usage
-----
    from shipcore.modules.databar.formulas import compute_new_bar_value

    compute_new_bar_value(index=2, current_value=3, min_value=0, max_value=6)
    # -> 2 (clicked the last filled segment: step down by one)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping


@dataclass(frozen=True)
class BarSegment:
    """One rendered slot of a token bar."""

    index: int
    filled: bool


@dataclass(frozen=True)
class BarClick:
    """A click on a bar segment, parsed from the segment's dataset."""

    index: int
    current: int
    min_value: int
    max_value: int

    @property
    def new_value(self) -> int:
        return compute_new_bar_value(
            self.index, self.current, self.min_value, self.max_value
        )


def compute_new_bar_value(
    index: int, current_value: int, min_value: int, max_value: int
) -> int:
    """
    Map a click on segment ``index`` to the bar's new value.

    Clicking the last filled segment steps the bar down by one; clicking
    any other segment fills the bar up to and including it. The result is
    always clamped to ``[min_value, max_value]``.

    Args:
        index: 0-based segment that was clicked
        current_value: Value the bar currently shows
        min_value: Lower bound of the bar
        max_value: Upper bound of the bar

    Returns:
        New bar value

    Example:
        >>> compute_new_bar_value(2, 3, 0, 6)
        2
        >>> compute_new_bar_value(4, 3, 0, 6)
        5
        >>> compute_new_bar_value(9, 3, 0, 6)
        6
    """
    if index + 1 == current_value:
        new_value = current_value - 1
    else:
        new_value = index + 1
    return max(min_value, min(new_value, max_value))


def prep_data_bar_blocks(current_value: int, max_value: int) -> List[BarSegment]:
    """
    Build the segments for a bar of ``max_value`` slots.

    The first ``current_value`` segments are filled.

    Example:
        >>> [b.filled for b in prep_data_bar_blocks(2, 4)]
        [True, True, False, False]
    """
    return [BarSegment(index=i, filled=i < current_value) for i in range(max(max_value, 0))]


def _to_int(raw: Any) -> int:
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return 0


def parse_bar_click(dataset: Mapping[str, Any]) -> BarClick:
    """
    Parse a segment dataset (``index``, ``current``, ``min``, ``max``).

    Missing or non-numeric fields become 0.

    Example:
        >>> parse_bar_click({"index": "1", "current": "4", "max": "6"}).new_value
        2
    """
    return BarClick(
        index=_to_int(dataset.get("index")),
        current=_to_int(dataset.get("current")),
        min_value=_to_int(dataset.get("min")),
        max_value=_to_int(dataset.get("max")),
    )
