# One distribution ships both packages, so they share a version.
from sam_cli import __version__

__all__ = ["__version__"]
