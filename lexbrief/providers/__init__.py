"""Concrete adapters for the interfaces in :mod:`lexbrief.interfaces`."""
