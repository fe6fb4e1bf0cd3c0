"""
UI adapters for the data picker.

Currently provides a Dash-based web host via create_dash_app().
"""

from .dash_app import create_dash_app

__all__ = ["create_dash_app"]
