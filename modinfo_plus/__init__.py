"""
modinfo-plus: discovery, download statistics and watchlists for game mods
published on GitHub.
"""

__version__ = "1.5.0"
