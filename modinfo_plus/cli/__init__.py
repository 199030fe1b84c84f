"""
Command-line host for the plugin, built with Typer and Rich.
"""
