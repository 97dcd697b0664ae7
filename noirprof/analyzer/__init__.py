"""Circuit analysis engine.

Provides per-opcode cost attribution, circuit comparison against the
calibrated cost model, and batch analysis over directories of compiled
ACIR artifacts.
"""
