"""Configuration, dependencies and cross-cutting helpers."""
