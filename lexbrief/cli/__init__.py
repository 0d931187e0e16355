"""Command-line tools for lexbrief."""
