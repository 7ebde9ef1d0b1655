"""augent - install and lock AI coding-assistant configuration bundles."""

from augent.core.exceptions import AugentError

__all__ = ["AugentError", "__version__"]

__version__ = "0.4.0"
