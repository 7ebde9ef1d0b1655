"""Core error and logging primitives shared across augent."""
