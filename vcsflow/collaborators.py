"""Protocols for the services vcsflow consumes but does not implement."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from vcsflow.files.writer import WriteResult


@runtime_checkable
class FileWriter(Protocol):
    """File mutation used by the manual conflict-resolution path."""

    def write_resolved_content(self, path: Path, content: str) -> WriteResult: ...


@runtime_checkable
class SearchService(Protocol):
    """Text/regex search over a directory tree."""

    async def search(
        self, root_path: Path, query: str, options: dict[str, Any] | None = ...
    ) -> list[dict[str, Any]]: ...


@runtime_checkable
class AnalysisWorkspace(Protocol):
    """Semantic analysis session handle.

    Callers own the handle and its lifecycle; implementations must allow only
    one load in flight at a time.
    """

    @property
    def is_loaded(self) -> bool: ...

    async def load(self, path: Path) -> None: ...

    async def unload(self) -> None: ...

    async def find_symbols(self, name: str) -> list[dict[str, Any]]: ...

    async def find_references(self, name: str) -> list[dict[str, Any]]: ...

    async def get_dependencies(self) -> list[dict[str, Any]]: ...
