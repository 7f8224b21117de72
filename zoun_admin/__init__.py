"""
zoun-admin: schema-driven admin engine for Django models.
"""

__version__ = "0.1.0"
