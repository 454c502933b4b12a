"""
Installable Value Objects

Architectural Intent:
- Closed set of frozen variants describing where a configuration expression lives
- Each variant renders its own `nix build` argument shape; the shape and order
  are a contract with the external builder
- Resolution against a configuration tree lives in
  domain/services/installable_resolution.py

Variants:
- FlakeInstallable: flake reference + attribute path ("ref#attr")
- FileInstallable: --file PATH [attr]
- ExpressionInstallable: --expr EXPR [attr]
- StoreInstallable: a store path, no attribute
- SystemInstallable: an already-resolved system, no attribute
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Union

from nixdeploy.domain.value_objects.attribute_path import AttributePath


@dataclass(frozen=True)
class FlakeInstallable:
    reference: str
    attribute: AttributePath = field(default_factory=AttributePath)

    def to_build_args(self) -> List[str]:
        return [f"{self.reference}#{self.attribute}"]

    def with_attribute(self, attribute: AttributePath) -> "FlakeInstallable":
        return replace(self, attribute=attribute)

    def __str__(self) -> str:
        return self.to_build_args()[0]

    @classmethod
    def parse(cls, text: str) -> "FlakeInstallable":
        """Parse ``reference#attribute``; the attribute part is optional."""
        reference, _, attribute = text.partition("#")
        return cls(reference=reference, attribute=AttributePath.parse(attribute))


@dataclass(frozen=True)
class FileInstallable:
    path: Path
    attribute: AttributePath = field(default_factory=AttributePath)

    def to_build_args(self) -> List[str]:
        args = ["--file", str(self.path)]
        if self.attribute:
            args.append(str(self.attribute))
        return args

    def with_attribute(self, attribute: AttributePath) -> "FileInstallable":
        return replace(self, attribute=attribute)

    def __str__(self) -> str:
        return " ".join(self.to_build_args())


@dataclass(frozen=True)
class ExpressionInstallable:
    expression: str
    attribute: AttributePath = field(default_factory=AttributePath)

    def to_build_args(self) -> List[str]:
        args = ["--expr", self.expression]
        if self.attribute:
            args.append(str(self.attribute))
        return args

    def with_attribute(self, attribute: AttributePath) -> "ExpressionInstallable":
        return replace(self, attribute=attribute)

    def __str__(self) -> str:
        return " ".join(self.to_build_args())


@dataclass(frozen=True)
class StoreInstallable:
    path: Path

    def to_build_args(self) -> List[str]:
        return [str(self.path)]

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class SystemInstallable:
    """A system that has already been built and linked, e.g. /run/current-system."""

    system: str

    def to_build_args(self) -> List[str]:
        return [self.system]

    def __str__(self) -> str:
        return self.system


Installable = Union[
    FlakeInstallable,
    FileInstallable,
    ExpressionInstallable,
    StoreInstallable,
    SystemInstallable,
]
