"""ASGI entrypoint for diffgate.

This module is a thin ASGI entrypoint that delegates to create_app().
"""

from diffgate.api.app import create_app

app = create_app()
