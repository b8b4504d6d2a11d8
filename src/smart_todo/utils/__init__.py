"""Utility helpers for smart-todo."""
