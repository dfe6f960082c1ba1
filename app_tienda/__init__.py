"""Tienda: catálogo público y panel administrativo (inventario, ventas, cobranza)."""

__version__ = '1.0.0'
