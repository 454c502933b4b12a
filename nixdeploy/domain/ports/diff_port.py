"""
Diff Port

Architectural Intent:
- Port interface for the external closure diff tool
- Only the exit status is interpreted; output goes straight to the user
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional


class DiffPort(ABC):
    @abstractmethod
    async def diff(self, old: Path, new: Path, message: Optional[str] = None) -> None:
        """
        Shows the difference between two configurations.
        Raises CommandFailedError when the tool fails.
        """
        pass
