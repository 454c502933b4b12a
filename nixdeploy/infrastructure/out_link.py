"""
Output Link

Architectural Intent:
- Owns the location where a build result is linked
- Either a caller-supplied path or `result` inside a private temporary
  directory that lives exactly as long as the enclosing `with` block
- Every stage that dereferences the built path must run inside that block
"""

from __future__ import annotations
import logging
import tempfile
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


class OutputLink:
    def __init__(self, path: Path, tempdir: Optional[tempfile.TemporaryDirectory] = None):
        self._path = path
        self._tempdir = tempdir

    @classmethod
    def create(cls, out_link: Optional[Union[str, Path]], prefix: str) -> "OutputLink":
        if out_link is not None:
            return cls(Path(out_link))
        tempdir = tempfile.TemporaryDirectory(prefix=prefix)
        return cls(Path(tempdir.name) / "result", tempdir)

    @property
    def path(self) -> Path:
        if self.closed:
            raise RuntimeError(f"Output link {self._path} used after its scope ended")
        return self._path

    @property
    def is_temporary(self) -> bool:
        return self._tempdir is not None

    @property
    def closed(self) -> bool:
        return self._tempdir is not None and not Path(self._tempdir.name).exists()

    def resolve(self) -> Path:
        """The store path the link currently points at."""
        return self.path.resolve(strict=True)

    def close(self) -> None:
        if self._tempdir is not None:
            logger.debug("Releasing temporary output link %s", self._path)
            self._tempdir.cleanup()

    def __enter__(self) -> "OutputLink":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"OutputLink({self._path}, temporary={self.is_temporary})"
