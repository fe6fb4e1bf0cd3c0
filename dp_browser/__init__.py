"""
Top-level package for the data picker browser.

This package exposes the data-binding tree resolver and a Dash host for it.
Most code should import from submodules such as:
    dp_browser.core
    dp_browser.services
    dp_browser.ui
"""

__all__: list[str] = []
