"""Shared utilities: error hierarchy, logging setup, concurrency helpers."""
