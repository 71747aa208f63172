"""fractionpack CLI: Typer-based command-line interface.

Provides the ``fractionpack`` command with subcommands for analyzing a
dependency declaration and checking which members of an assembled archive
the platform already supplies.

All output uses Rich for formatted terminal display.
"""
