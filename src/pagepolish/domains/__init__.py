"""Bounded contexts of the Polish editing engine."""
