"""Typed payload shapes for GitHub API responses."""
