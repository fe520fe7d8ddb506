"""
PantryPal Schemas
Pydantic request and response models
"""
