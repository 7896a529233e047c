from .controller import ENERGY_POINTS_RESET, Notifier, ShipSheetController

__all__ = ["ENERGY_POINTS_RESET", "Notifier", "ShipSheetController"]
