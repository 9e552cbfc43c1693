"""
models/ - Domain Layer
======================
Plain dataclasses for transactions, recurring templates, budgets, the
outcome records of a processing pass and notification intents.
No I/O happens here.
"""
