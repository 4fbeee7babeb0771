"""
Deterministic price/weight calculation.

Pure Python math. No network, no database.
Given a CalculationInput, the calculator registered for its form type returns
the per-unit price and weight. Quantity never enters the formulas.
"""
