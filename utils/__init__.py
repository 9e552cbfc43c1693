"""
utils/ - Shared helpers (logging, clock).
"""
