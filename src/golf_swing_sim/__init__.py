"""
Golf swing impact simulator package.

We keep this __init__ lightweight so that `import golf_swing_sim`
does not pull in scipy or pandas.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("golf-swing-simulator")
except PackageNotFoundError:  # package not installed (e.g. running from a source checkout)
    __version__ = "0.0.0"

__all__ = ["__version__"]
