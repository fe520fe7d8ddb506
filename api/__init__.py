"""
PantryPal API Package
HTTP routers mounted under /api
"""
