"""
Attribute Path Value Object

Architectural Intent:
- Immutable, ordered list of segments addressing a value inside an evaluation tree
- Parses and renders the dotted, double-quote-escaped syntax Nix uses
  (e.g. nixosConfigurations."host.example".config)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

from nixdeploy.domain.errors import AttributePathError


def parse_attribute(text: str) -> Tuple[str, ...]:
    """Split ``text`` on dots that are not inside double quotes.

    Whitespace around separators and around quoted segments is dropped.
    Quoted segments are taken verbatim, dots included.
    """
    if not text.strip():
        return ()

    segments = []
    elem = ""
    pending_ws = ""
    in_quote = False

    for char in text:
        if in_quote:
            if char == '"':
                in_quote = False
            else:
                elem += char
        elif char == '"':
            if elem:
                elem += pending_ws
            pending_ws = ""
            in_quote = True
        elif char == ".":
            segments.append(elem)
            elem = ""
            pending_ws = ""
        elif char.isspace():
            pending_ws += char
        else:
            if elem:
                elem += pending_ws
            pending_ws = ""
            elem += char

    if in_quote:
        raise AttributePathError(f"Unterminated quote in attribute path: {text!r}")

    segments.append(elem)
    return tuple(segments)


def _needs_quotes(segment: str) -> bool:
    # the parser drops bare empty segments and surrounding whitespace
    return not segment or "." in segment or segment != segment.strip()


def join_attribute(segments: Iterable[str]) -> str:
    return ".".join(f'"{s}"' if _needs_quotes(s) else s for s in segments)


@dataclass(frozen=True)
class AttributePath:
    segments: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> "AttributePath":
        return cls(parse_attribute(text))

    @classmethod
    def of(cls, *segments: str) -> "AttributePath":
        return cls(tuple(segments))

    def extend(self, segments: Iterable[str]) -> "AttributePath":
        return AttributePath(self.segments + tuple(segments))

    def append(self, segment: str) -> "AttributePath":
        return AttributePath(self.segments + (segment,))

    def __iter__(self) -> Iterator[str]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __bool__(self) -> bool:
        return bool(self.segments)

    def __str__(self) -> str:
        return join_attribute(self.segments)
