"""triagealign: two-pass colour-space alignment pipeline."""

from triagealign.__version__ import __version__

__all__ = ["__version__"]
