"""Routers package."""

from . import (
    health,
    auth,
    resources,
    media,
)
