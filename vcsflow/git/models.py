"""Data models for git command results."""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

FileStatus = Literal[
    "added", "modified", "deleted", "renamed", "copied", "unmerged", "unknown"
]

RemoteDirection = Literal["fetch", "push"]


class CommandInvocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    binary: str = "git"
    args: list[str]
    cwd: Path


class CommandResult(BaseModel):
    """Outcome of one git subprocess call."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class FileChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    status: FileStatus


class RepositoryStatus(BaseModel):
    """Parsed output of git status --porcelain=v2 --branch."""

    model_config = ConfigDict(frozen=True)

    branch: str = ""
    upstream: str | None = None
    ahead: int = Field(default=0, ge=0)
    behind: int = Field(default=0, ge=0)
    staged: list[FileChange] = []
    unstaged: list[FileChange] = []
    untracked: list[str] = []
    conflicted: list[str] = []
    raw_status: str | None = None

    @property
    def is_clean(self) -> bool:
        return not (self.staged or self.unstaged or self.untracked or self.conflicted)


class ConflictSection(BaseModel):
    """One marker-delimited region; offset/length index into the file text."""

    model_config = ConfigDict(frozen=True)

    ours: str
    theirs: str
    base: str | None = None
    offset: int = Field(ge=0)
    length: int = Field(ge=0)


class ConflictDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_path: str
    sections: list[ConflictSection] = []
    full_content: str | None = None


class StashEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    ref: str
    branch: str
    message: str


class RemoteEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    direction: RemoteDirection


class BranchEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    is_current: bool = False
    is_remote: bool = False


class CommitEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str
    short_hash: str
    author: str
    email: str = ""
    date: str
    message: str


# ── Result envelopes ─────────────────────────────────────────────────


class GitResult(BaseModel):
    """Fields shared by every operation result."""

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str | None = None
    output: str | None = None
    errors: str | None = None
    cancelled: bool = False


class RawResult(GitResult):
    """Pass-through result of a mutation with no structured payload."""

    kind: Literal["raw"] = "raw"


class StatusResult(GitResult):
    kind: Literal["status"] = "status"
    status: RepositoryStatus | None = None


class CommitResult(GitResult):
    kind: Literal["commit"] = "commit"
    commit_hash: str | None = None
    short_hash: str | None = None


class AddResult(GitResult):
    kind: Literal["add"] = "add"
    staged_files: list[str] = []


class CheckoutResult(GitResult):
    kind: Literal["checkout"] = "checkout"
    current_branch: str | None = None


class BranchListResult(GitResult):
    kind: Literal["branches"] = "branches"
    current_branch: str | None = None
    branches: list[BranchEntry] = []


class ConflictResult(GitResult):
    """Merge/pull outcome that needs the caller's attention."""

    kind: Literal["conflict"] = "conflict"
    has_conflicts: bool = False
    aborted: bool = False
    conflicted_files: list[str] = []
    conflicts: list[ConflictDetail] = []
    suggestion: str | None = None


class LogResult(GitResult):
    kind: Literal["log"] = "log"
    commits: list[CommitEntry] = []
    lines: list[str] = []


class DiffResult(GitResult):
    kind: Literal["diff"] = "diff"
    diff: str | None = None
    stats: str | None = None
    changed_files: list[str] = []


class RemoteListResult(GitResult):
    kind: Literal["remotes"] = "remotes"
    remotes: list[RemoteEntry] = []


class StashListResult(GitResult):
    kind: Literal["stashes"] = "stashes"
    stashes: list[StashEntry] = []


OperationResult = Annotated[
    RawResult
    | StatusResult
    | CommitResult
    | AddResult
    | CheckoutResult
    | BranchListResult
    | ConflictResult
    | LogResult
    | DiffResult
    | RemoteListResult
    | StashListResult,
    Field(discriminator="kind"),
]
