# SPDX-License-Identifier: MIT
"""figma-beacon: activity reports for Figma teams, in the terminal."""

from beacon._version import __version__

__all__ = ["__version__"]
