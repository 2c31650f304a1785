"""FinMon learning engine: teach, predict, and share spend-category rules."""

__version__ = "0.1.0"
