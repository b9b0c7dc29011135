"""nscert-controller - one wildcard certificate per namespace."""

from nscert_controller.__version__ import __version__

__all__ = ["__version__"]
