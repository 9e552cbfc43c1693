"""
security/ - Access control for bot commands (whitelist, rate limiting).
"""
