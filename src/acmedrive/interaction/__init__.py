"""User interaction: confirmation prompts and their rendered instructions."""

from acmedrive.interaction.base import (
    AutoConfirmInteraction,
    ConsoleInteraction,
    UserInteraction,
)
from acmedrive.interaction.renderer import AGREEMENT, InstructionRenderer

__all__ = [
    "AGREEMENT",
    "AutoConfirmInteraction",
    "ConsoleInteraction",
    "InstructionRenderer",
    "UserInteraction",
]
