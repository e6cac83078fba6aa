"""Text command surface."""

from pocketledger.commands.processor import CommandProcessor, CommandResponse, main

__all__ = ["CommandProcessor", "CommandResponse", "main"]
