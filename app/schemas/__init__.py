"""
Schemas package.

Kept quiet on purpose: import from the concrete module, e.g.
    from app.schemas.order import OrderCreateIn, OrderOut
"""

__all__: list[str] = []
