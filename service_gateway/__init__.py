"""Prism edge gateway service."""
