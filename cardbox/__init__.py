"""
CardBox package initializer.

This package reads loyalty-card numbers from photographs: it decodes QR codes
and barcodes and falls back to OCR with heuristic candidate ranking.

The package exposes a ``__version__`` attribute indicating the installed
version of CardBox, read from pyproject.toml via importlib.metadata.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cardbox")
except PackageNotFoundError:
    # Package is not installed (running from source without pip install -e .)
    __version__ = "0.0.0.dev"

__all__: list[str] = ["__version__"]
