"""Constant-product pool engine for binary outcome markets.

Pure reserve math, the engine that commits pool state transitions, the
price history log, observer notification, and in-memory stores.
"""
