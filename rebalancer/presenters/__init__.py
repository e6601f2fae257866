from .holdings import HoldingsTableBuilder, HoldingsTableRow, render_result, render_target

__all__ = [
    "HoldingsTableBuilder",
    "HoldingsTableRow",
    "render_result",
    "render_target",
]
