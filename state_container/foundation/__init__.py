"""Identifier helpers."""
