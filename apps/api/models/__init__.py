"""Models package."""

from .user import User
from .resource import Resource
