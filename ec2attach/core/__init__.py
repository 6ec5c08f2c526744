"""Core workflow, configuration and waiting primitives."""
