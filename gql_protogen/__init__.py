"""Compile GraphQL operations into proto3 service definitions."""

__version__ = "0.1.0"
