"""
facetfilter command-line interface.

Typer application that runs the engine over an item file.
"""

__version__ = "0.1.0"
