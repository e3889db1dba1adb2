"""Hooks that keep the external full-text index of conversations up to date."""
