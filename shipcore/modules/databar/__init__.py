from .formulas import (
    BarClick,
    BarSegment,
    compute_new_bar_value,
    parse_bar_click,
    prep_data_bar_blocks,
)

__all__ = [
    "BarClick",
    "BarSegment",
    "compute_new_bar_value",
    "parse_bar_click",
    "prep_data_bar_blocks",
]
