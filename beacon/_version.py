# SPDX-License-Identifier: MIT
__version__ = "0.4.0"
