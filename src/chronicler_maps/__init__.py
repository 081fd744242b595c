"""
Chronicler Maps - interactive map subsystem for the Chronicler vault.

Built with PyQt6. Lets users attach pins and regions to raster images
and navigate from them to other pages and maps in the vault.
"""

__version__ = "1.0.0"
__author__ = "Chronicler Team"
