"""
Terminal Confirmation Adapter

Architectural Intent:
- Implements ConfirmationPort with an interactive yes/no prompt on the terminal
- An interrupted prompt counts as "no"
"""

import asyncio
import typer


class TerminalConfirmation:
    async def confirm(self, prompt: str) -> bool:
        def _ask() -> bool:
            try:
                return typer.confirm(prompt, default=False)
            except typer.Abort:
                return False

        return await asyncio.get_event_loop().run_in_executor(None, _ask)
