"""
services/ - Business Layer
==========================
The processing engines (recurring schedule, budget reconciliation, pass
coordination) and the user-facing services the handlers call.
"""
