"""repokeep CLI — Typer-based command-line interface.

Provides the ``repokeep`` command with subcommands for listing managed
repositories, indexing their contents, running purges and inspecting
version indexes.

All output uses Rich for formatted terminal display.
"""
