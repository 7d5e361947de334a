"""Subcommands of the feedicons CLI."""
