"""Geo-verified attendance marking.

The package is organized by feature modules (location, integrity, attendance, sync, ...)
with a thin Flask controller layer over service/repository layers.
"""
