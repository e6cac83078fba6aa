"""User registry package."""

from pocketledger.services.registry.passwords import PasswordHasher
from pocketledger.services.registry.registry import Registry, User

__all__ = ["PasswordHasher", "Registry", "User"]
