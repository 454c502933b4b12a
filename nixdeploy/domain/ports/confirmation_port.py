"""
Confirmation Port

Architectural Intent:
- Port interface for blocking yes/no questions to the operator
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ConfirmationPort(Protocol):
    async def confirm(self, prompt: str) -> bool:
        """Ask prompt and return the answer. Defaults to no."""
        ...
