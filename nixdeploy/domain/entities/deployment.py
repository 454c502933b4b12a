"""
Deployment Module

Architectural Intent:
- Deployment aggregate records progress of one rebuild through its stages
- Stages are totally ordered; an aggregate may skip stages but never go back
- All state changes produce new instances so the history stays auditable
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Optional, Tuple


class RebuildStage(IntEnum):
    PENDING = 0
    RESOLVE_INSTALLABLE = 1
    BUILD = 2
    RESOLVE_SPECIALISATION = 3
    DIFF = 4
    CONFIRM = 5
    COPY_REMOTE = 6
    ACTIVATE = 7
    REGISTER_BOOT = 8
    DONE = 9


class DeploymentStatus(IntEnum):
    RUNNING = 0
    COMPLETED = 1
    FAILED = 2


@dataclass(frozen=True)
class Deployment:
    variant: str
    stage: RebuildStage = RebuildStage.PENDING
    status: DeploymentStatus = DeploymentStatus.RUNNING
    history: Tuple[RebuildStage, ...] = ()
    error_message: Optional[str] = None

    def advance(self, stage: RebuildStage) -> "Deployment":
        if self.status != DeploymentStatus.RUNNING:
            raise ValueError(f"Deployment is {self.status.name}, cannot enter {stage.name}")
        if stage <= self.stage:
            raise ValueError(
                f"Cannot move from {self.stage.name} back to {stage.name}"
            )
        return replace(self, stage=stage, history=self.history + (stage,))

    def complete(self) -> "Deployment":
        done = self.advance(RebuildStage.DONE)
        return replace(done, status=DeploymentStatus.COMPLETED)

    def fail(self, message: str) -> "Deployment":
        return replace(self, status=DeploymentStatus.FAILED, error_message=message)

    def reached(self, stage: RebuildStage) -> bool:
        return stage in self.history

    def __repr__(self) -> str:
        return (
            f"Deployment(variant={self.variant}, stage={self.stage.name}, "
            f"status={self.status.name}, error_message={self.error_message})"
        )
