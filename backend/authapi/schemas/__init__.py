"""Marshmallow schemas for request validation and response shaping."""

from .auth import LoginSchema, RegisterSchema, RotateSchema, TokenPairSchema, WhoAmISchema

__all__ = [
    "LoginSchema",
    "RegisterSchema",
    "RotateSchema",
    "TokenPairSchema",
    "WhoAmISchema",
]
