"""
PantryPal Utilities
Request helpers and rate limiting
"""
