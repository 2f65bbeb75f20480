"""Core configuration, wiring and shared primitives."""
