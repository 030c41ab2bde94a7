"""Catalog domain module: vendor menu items offered at a discount."""
