# SPDX-License-Identifier: MIT
"""Terminal UI for figma-beacon."""
