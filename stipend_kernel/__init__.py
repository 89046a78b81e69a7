"""
stipend_kernel -- foundations shared by the stipend compliance engine.

Holds the structured logging setup, the typed exception hierarchy, the
pure domain value objects (placement, child, family, stored budget) and the
SQLAlchemy declarative base.  Nothing here depends on the config, engine or
service layers.
"""
