"""Async git workflow operations built on the command runner and parsers."""

import asyncio
import functools
import re
import shlex
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import ParamSpec, TypeVar, cast

import structlog

from vcsflow.collaborators import FileWriter
from vcsflow.core.config import default_backup_directory
from vcsflow.exceptions import (
    CommandCancelledError,
    InvalidRepositoryError,
    InvocationError,
    PreconditionError,
)
from vcsflow.files.writer import FileWriteService
from vcsflow.git import formatter
from vcsflow.git.locking import RepositoryLocks
from vcsflow.git.models import (
    AddResult,
    BranchListResult,
    CheckoutResult,
    CommandResult,
    CommitResult,
    ConflictDetail,
    ConflictResult,
    DiffResult,
    GitResult,
    LogResult,
    RawResult,
    RemoteListResult,
    StashListResult,
    StatusResult,
)
from vcsflow.git.parsers import (
    LOG_FORMAT,
    parse_branch_list,
    parse_conflict_sections,
    parse_log,
    parse_name_list,
    parse_porcelain_status,
    parse_remote_list,
    parse_stash_list,
)
from vcsflow.git.runner import CommandRunner

logger = structlog.get_logger()

_BRANCH_NAME_RE = re.compile(r"^[a-zA-Z0-9._/\-]+$")
_CONFLICT_KEYWORD = "CONFLICT"
_STRATEGIES = ("ours", "theirs", "manual")
_STASH_OPERATIONS = ("push", "pop", "apply", "list", "drop", "clear")

DEFAULT_DIFF_MAX_CHARS = 10_000
DEFAULT_CONFLICT_PREVIEW_MAX_CHARS = 5_000

PathLike = str | Path
P = ParamSpec("P")
R = TypeVar("R", bound=GitResult)
T = TypeVar("T")


def _operation(
    name: str, result_cls: type[GitResult]
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Convert any fault raised inside an operation into a failure envelope."""

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except PreconditionError as e:
                logger.info("git_precondition_failed", operation=name, reason=str(e))
                return cast(T, result_cls(success=False, message=str(e)))
            except CommandCancelledError as e:
                logger.info("git_operation_cancelled", operation=name)
                return cast(
                    T,
                    result_cls(
                        success=False, message=f"{name} cancelled: {e}", cancelled=True
                    ),
                )
            except InvocationError as e:
                logger.warning("git_invocation_failed", operation=name, error=str(e))
                return cast(T, result_cls(success=False, message=f"{name} failed: {e}"))
            except Exception as e:
                logger.exception("git_operation_error", operation=name)
                return cast(
                    T, result_cls(success=False, message=f"Error in {name}: {e}")
                )

        return wrapper

    return decorator


class GitService:
    """Async git workflow operations returning structured result envelopes."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        writer: FileWriter | None = None,
        locks: RepositoryLocks | None = None,
        default_repo_path: Path | None = None,
        diff_max_chars: int = DEFAULT_DIFF_MAX_CHARS,
        conflict_preview_max_chars: int = DEFAULT_CONFLICT_PREVIEW_MAX_CHARS,
    ) -> None:
        self._runner = runner or CommandRunner()
        self._writer = writer or FileWriteService(default_backup_directory())
        self._locks = locks or RepositoryLocks()
        self._default_repo_path = default_repo_path
        self._diff_max_chars = diff_max_chars
        self._conflict_preview_max_chars = conflict_preview_max_chars

    async def is_repo(self, repo_path: PathLike | None = None) -> bool:
        """Check if repo_path is inside a git repository."""
        try:
            cwd = self._resolve_repo(repo_path)
            result = await self._git(cwd, "rev-parse", "--is-inside-work-tree")
        except InvocationError:
            return False
        return result.success

    # ── Status & staging ─────────────────────────────────────────────

    @_operation("git status", StatusResult)
    async def status(
        self,
        *,
        repo_path: PathLike | None = None,
        cancel: asyncio.Event | None = None,
    ) -> StatusResult:
        """Snapshot the working tree from porcelain v2 plus the human-readable status."""
        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            result = await self._git(
                cwd, "status", "--porcelain=v2", "--branch", cancel=cancel
            )
            if not result.success:
                return _command_failure(StatusResult, "git status", result)
            raw = await self._git(cwd, "status", cancel=cancel)

        status = parse_porcelain_status(result.stdout)
        return StatusResult(
            success=True,
            status=status.model_copy(update={"raw_status": raw.stdout}),
        )

    @_operation("git add", AddResult)
    async def add(
        self,
        files: str | Sequence[str],
        *,
        repo_path: PathLike | None = None,
        include_deleted: bool = True,
        cancel: asyncio.Event | None = None,
    ) -> AddResult:
        """Stage files. A string is split shell-style into paths or patterns."""
        paths = _split_paths(files)
        if not paths:
            raise PreconditionError("No files specified.")

        cwd = self._resolve_repo(repo_path)
        args = ["add", "-A", "--", *paths] if include_deleted else ["add", "--", *paths]
        async with self._locks.hold(cwd):
            result = await self._git(cwd, *args, cancel=cancel)
            status = await self._git(
                cwd, "status", "--porcelain=v2", "--branch", cancel=cancel
            )

        staged = [c.path for c in parse_porcelain_status(status.stdout).staged]
        return AddResult(
            success=result.success,
            message="Files staged successfully"
            if result.success
            else "Failed to stage files",
            staged_files=staged,
            output=result.stdout or None,
            errors=result.stderr or None,
        )

    @_operation("git commit", CommitResult)
    async def commit(
        self,
        message: str,
        *,
        repo_path: PathLike | None = None,
        stage_all: bool = False,
        amend: bool = False,
        allow_empty: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> CommitResult:
        """Create a commit; on success report the full and short hash of HEAD."""
        if not message or not message.strip():
            raise PreconditionError("Commit message must not be empty.")

        args = ["commit"]
        if stage_all:
            args.append("-a")
        if amend:
            args.append("--amend")
        if allow_empty:
            args.append("--allow-empty")
        # The message is its own argv element; no shell quoting involved
        args.extend(["-m", message])

        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            result = await self._git(cwd, *args, cancel=cancel)
            if not result.success:
                return _command_failure(CommitResult, "Commit", result)
            full = await self._git(cwd, "rev-parse", "HEAD", cancel=cancel)
            short = await self._git(cwd, "rev-parse", "--short", "HEAD", cancel=cancel)

        logger.info("git_commit_created", cwd=str(cwd), commit=short.stdout)
        return CommitResult(
            success=True,
            message="Commit created successfully",
            commit_hash=full.stdout,
            short_hash=short.stdout,
            output=result.stdout or None,
        )

    # ── Branches ─────────────────────────────────────────────────────

    @_operation("git branch", BranchListResult)
    async def branch(
        self,
        *,
        repo_path: PathLike | None = None,
        new_branch: str | None = None,
        delete_branch: str | None = None,
        force: bool = False,
        include_remote: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> BranchListResult | RawResult:
        """Delete, create, or (with neither name given) list branches."""
        cwd = self._resolve_repo(repo_path)

        if delete_branch and delete_branch.strip():
            _check_branch_name(delete_branch)
            flag = "-D" if force else "-d"
            async with self._locks.hold(cwd):
                result = await self._git(cwd, "branch", flag, delete_branch, cancel=cancel)
            return _raw(
                result, f"Branch '{delete_branch}' deleted", "Failed to delete branch"
            )

        if new_branch and new_branch.strip():
            _check_branch_name(new_branch)
            async with self._locks.hold(cwd):
                result = await self._git(cwd, "branch", new_branch, cancel=cancel)
            return _raw(
                result, f"Branch '{new_branch}' created", "Failed to create branch"
            )

        args = ["branch", "-a"] if include_remote else ["branch"]
        async with self._locks.hold(cwd):
            result = await self._git(cwd, *args, cancel=cancel)
        if not result.success:
            return _command_failure(BranchListResult, "git branch", result)

        branches = parse_branch_list(result.stdout)
        current = next((b.name for b in branches if b.is_current), "")
        return BranchListResult(
            success=True, current_branch=current, branches=branches
        )

    @_operation("git checkout", CheckoutResult)
    async def checkout(
        self,
        target: str,
        *,
        repo_path: PathLike | None = None,
        create_branch: bool = False,
        files: str | Sequence[str] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> CheckoutResult:
        """Switch branches (optionally creating one) or restore files from target."""
        _check_ref(target, "checkout target")
        if create_branch:
            _check_branch_name(target)

        args = ["checkout"]
        if create_branch:
            args.append("-b")
        args.append(target)
        paths = _split_paths(files) if files else []
        if paths:
            args.extend(["--", *paths])

        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            result = await self._git(cwd, *args, cancel=cancel)
            current = await self._git(cwd, "branch", "--show-current", cancel=cancel)

        return CheckoutResult(
            success=result.success,
            message=f"Checked out '{target}'" if result.success else "Checkout failed",
            current_branch=current.stdout if current.success else None,
            output=result.stdout or None,
            errors=result.stderr or None,
        )

    # ── Merge, pull & conflicts ──────────────────────────────────────

    @_operation("git merge", RawResult)
    async def merge(
        self,
        branch: str,
        *,
        repo_path: PathLike | None = None,
        no_fast_forward: bool = False,
        abort_on_conflict: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> ConflictResult | RawResult:
        """Merge branch into the current branch.

        Conflicts are reported as a ConflictResult. With abort_on_conflict the
        merge is rolled back and the result is marked aborted instead.
        """
        _check_ref(branch, "branch")
        args = ["merge"]
        if no_fast_forward:
            args.append("--no-ff")
        args.append(branch)

        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            result = await self._git(cwd, *args, cancel=cancel)
            if not _has_conflict(result):
                return _raw(result, f"Successfully merged '{branch}'", "Merge failed")

            conflicted = await self._conflicted_files(cwd, cancel)
            logger.info(
                "merge_conflicts_detected",
                cwd=str(cwd),
                branch=branch,
                conflicted_files=conflicted,
                abort=abort_on_conflict,
            )
            if not abort_on_conflict:
                return ConflictResult(
                    success=False,
                    has_conflicts=True,
                    message="Merge has conflicts that need to be resolved",
                    conflicted_files=conflicted,
                    output=result.stdout or None,
                    errors=result.stderr or None,
                    suggestion="Use get_conflicts to see conflict details, "
                    "then resolve_conflict to fix them, or abort_merge to cancel",
                )

            abort = await self._git(cwd, "merge", "--abort", cancel=cancel)

        if not abort.success:
            return ConflictResult(
                success=False,
                has_conflicts=True,
                message="Merge had conflicts and could not be aborted",
                conflicted_files=conflicted,
                output=result.stdout or None,
                errors=abort.stderr or None,
                suggestion="Resolve the conflicts manually or run abort_merge",
            )
        return ConflictResult(
            success=False,
            has_conflicts=True,
            aborted=True,
            message="Merge aborted due to conflicts (abort_on_conflict=True)",
            conflicted_files=conflicted,
            output=result.stdout or None,
        )

    @_operation("git pull", RawResult)
    async def pull(
        self,
        *,
        repo_path: PathLike | None = None,
        remote: str = "origin",
        branch: str | None = None,
        rebase: bool = False,
        fast_forward_only: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> ConflictResult | RawResult:
        _check_ref(remote, "remote")
        args = ["pull"]
        if rebase:
            args.append("--rebase")
        if fast_forward_only:
            args.append("--ff-only")
        args.append(remote)
        if branch and branch.strip():
            _check_ref(branch, "branch")
            args.append(branch)

        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            result = await self._git(cwd, *args, cancel=cancel)
            if not _has_conflict(result):
                return _raw(result, "Pull completed successfully", "Pull failed")
            conflicted = await self._conflicted_files(cwd, cancel)

        logger.info(
            "pull_conflicts_detected", cwd=str(cwd), conflicted_files=conflicted
        )
        return ConflictResult(
            success=False,
            has_conflicts=True,
            message="Pull completed with conflicts that need to be resolved",
            conflicted_files=conflicted,
            output=result.stdout or None,
            errors=result.stderr or None,
            suggestion="Use resolve_conflict or abort_merge to handle conflicts",
        )

    @_operation("git get conflicts", ConflictResult)
    async def get_conflicts(
        self,
        *,
        repo_path: PathLike | None = None,
        cancel: asyncio.Event | None = None,
    ) -> ConflictResult:
        """List conflicted files with their parsed conflict regions."""
        root = await self._toplevel(self._resolve_repo(repo_path), cancel)
        async with self._locks.hold(root):
            result = await self._git(
                root, "diff", "--name-only", "--diff-filter=U", cancel=cancel
            )
        if not result.success:
            return _command_failure(ConflictResult, "git get conflicts", result)

        conflicted = parse_name_list(result.stdout)
        if not conflicted:
            return ConflictResult(
                success=True, has_conflicts=False, message="No conflicts found"
            )

        details: list[ConflictDetail] = []
        for name in conflicted:
            try:
                content = (root / name).read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                # e.g. modify/delete conflicts leave no file in the work tree
                logger.info("conflict_file_unreadable", path=name, error=str(e))
                details.append(ConflictDetail(file_path=name))
                continue
            details.append(
                ConflictDetail(
                    file_path=name,
                    sections=parse_conflict_sections(content),
                    full_content=formatter.truncate_text(
                        content, self._conflict_preview_max_chars
                    ),
                )
            )

        return ConflictResult(
            success=True,
            has_conflicts=True,
            message=f"{len(conflicted)} conflicted file(s)",
            conflicted_files=conflicted,
            conflicts=details,
            suggestion="Use resolve_conflict to resolve each file, "
            "or abort_merge to cancel",
        )

    @_operation("git resolve conflict", RawResult)
    async def resolve_conflict(
        self,
        file_path: str,
        strategy: str,
        *,
        repo_path: PathLike | None = None,
        resolved_content: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> RawResult:
        """Resolve one conflicted file with 'ours', 'theirs' or 'manual' content."""
        tag = strategy.strip().lower()
        if tag not in _STRATEGIES:
            raise PreconditionError(
                f"Unknown strategy: {strategy}. Use 'ours', 'theirs', or 'manual'"
            )
        if tag == "manual" and not resolved_content:
            raise PreconditionError(
                "resolved_content is required when using 'manual' strategy"
            )

        # Conflicted paths are reported relative to the work tree root
        cwd = await self._toplevel(self._resolve_repo(repo_path), cancel)
        full_path = (cwd / file_path).resolve()
        if not full_path.is_relative_to(cwd):
            raise PreconditionError(f"Path is outside the repository: {file_path}")
        if not full_path.is_file():
            raise PreconditionError(f"File not found: {file_path}")
        rel_path = full_path.relative_to(cwd).as_posix()

        async with self._locks.hold(cwd):
            if tag == "manual":
                written = self._writer.write_resolved_content(
                    full_path,
                    resolved_content,  # type: ignore[arg-type]
                )
                if not written.success:
                    return RawResult(success=False, message=written.message)
                staged = await self._git(cwd, "add", "--", rel_path, cancel=cancel)
                return _raw(
                    staged,
                    f"Resolved '{rel_path}' with provided content and staged",
                    f"Wrote '{rel_path}' but failed to stage it",
                )

            side = "current branch" if tag == "ours" else "incoming branch"
            result = await self._git(
                cwd, "checkout", f"--{tag}", "--", rel_path, cancel=cancel
            )
            if not result.success:
                return _raw(result, "", "Failed to resolve")
            staged = await self._git(cwd, "add", "--", rel_path, cancel=cancel)

        logger.info("conflict_resolved", cwd=str(cwd), path=rel_path, strategy=tag)
        return RawResult(
            success=staged.success,
            message=f"Resolved '{rel_path}' using '{tag}' ({side})"
            if staged.success
            else f"Checked out '{tag}' for '{rel_path}' but failed to stage it",
            output=result.stdout or None,
            errors=(staged.stderr or result.stderr) or None,
        )

    @_operation("git abort merge", RawResult)
    async def abort_merge(
        self,
        *,
        repo_path: PathLike | None = None,
        cancel: asyncio.Event | None = None,
    ) -> RawResult:
        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            result = await self._git(cwd, "merge", "--abort", cancel=cancel)
        return _raw(result, "Merge aborted successfully", "Failed to abort merge")

    @_operation("git continue merge", RawResult)
    async def continue_merge(
        self,
        message: str | None = None,
        *,
        repo_path: PathLike | None = None,
        cancel: asyncio.Event | None = None,
    ) -> RawResult | ConflictResult:
        """Complete a merge once every conflict is resolved."""
        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            conflicted = await self._conflicted_files(cwd, cancel)
            if conflicted:
                return ConflictResult(
                    success=False,
                    has_conflicts=True,
                    message="Cannot continue: unresolved conflicts remain",
                    conflicted_files=conflicted,
                    suggestion="Use resolve_conflict on each file first",
                )

            if message and message.strip():
                args = ["commit", "-m", message]
            else:
                args = ["commit", "--no-edit"]
            result = await self._git(cwd, *args, cancel=cancel)

        return _raw(result, "Merge completed successfully", "Failed to complete merge")

    # ── History & diff ───────────────────────────────────────────────

    @_operation("git log", LogResult)
    async def log(
        self,
        *,
        repo_path: PathLike | None = None,
        max_count: int = 10,
        path: str | None = None,
        author: str | None = None,
        since: str | None = None,
        one_line: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> LogResult:
        if max_count < 1:
            raise PreconditionError("max_count must be at least 1")

        args = ["log", f"-{max_count}"]
        args.append("--oneline" if one_line else f"--format={LOG_FORMAT}")
        if author and author.strip():
            args.append(f"--author={author}")
        if since and since.strip():
            args.append(f"--since={since}")
        if path and path.strip():
            args.extend(["--", path])

        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            result = await self._git(cwd, *args, cancel=cancel)
        if not result.success:
            return _command_failure(LogResult, "git log", result)

        if one_line:
            return LogResult(success=True, lines=parse_name_list(result.stdout))
        return LogResult(success=True, commits=parse_log(result.stdout))

    @_operation("git diff", DiffResult)
    async def diff(
        self,
        *,
        repo_path: PathLike | None = None,
        staged: bool = False,
        file: str | None = None,
        from_ref: str | None = None,
        to_ref: str | None = None,
        name_only: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> DiffResult:
        """Show changes; name_only returns the changed file list instead of text."""
        if to_ref and not from_ref:
            raise PreconditionError("to_ref requires from_ref")

        options: list[str] = []
        if staged:
            options.append("--staged")
        if from_ref:
            _check_ref(from_ref, "from_ref")
            options.append(from_ref)
            if to_ref:
                _check_ref(to_ref, "to_ref")
                options.append(to_ref)
        if file and file.strip():
            options.extend(["--", file])

        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            if name_only:
                result = await self._git(
                    cwd, "diff", "--name-only", *options, cancel=cancel
                )
            else:
                result = await self._git(cwd, "diff", *options, cancel=cancel)
                stats = await self._git(cwd, "diff", "--stat", *options, cancel=cancel)
        if not result.success:
            return _command_failure(DiffResult, "git diff", result)

        if name_only:
            return DiffResult(
                success=True, changed_files=parse_name_list(result.stdout)
            )
        return DiffResult(
            success=True,
            diff=formatter.truncate_text(
                result.stdout,
                self._diff_max_chars,
                "(truncated, use the file option to diff a specific file)",
            ),
            stats=stats.stdout,
        )

    # ── Remotes ──────────────────────────────────────────────────────

    @_operation("git push", RawResult)
    async def push(
        self,
        *,
        repo_path: PathLike | None = None,
        remote: str = "origin",
        branch: str | None = None,
        force: bool = False,
        set_upstream: bool = False,
        tags: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> RawResult:
        _check_ref(remote, "remote")
        args = ["push"]
        if force:
            args.append("--force")
        if set_upstream:
            args.append("--set-upstream")
        if tags:
            args.append("--tags")
        args.append(remote)
        if branch and branch.strip():
            _check_ref(branch, "branch")
            args.append(branch)

        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            result = await self._git(cwd, *args, cancel=cancel)
        return _raw(result, "Push completed successfully", "Push failed")

    @_operation("git fetch", RawResult)
    async def fetch(
        self,
        *,
        repo_path: PathLike | None = None,
        remote: str = "origin",
        all_remotes: bool = False,
        prune: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> RawResult:
        args = ["fetch"]
        if all_remotes:
            args.append("--all")
        else:
            _check_ref(remote, "remote")
            args.append(remote)
        if prune:
            args.append("--prune")

        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            result = await self._git(cwd, *args, cancel=cancel)
        return _raw(result, "Fetch completed", "Fetch failed")

    @_operation("git remote", RemoteListResult)
    async def remote(
        self,
        *,
        repo_path: PathLike | None = None,
        add_name: str | None = None,
        add_url: str | None = None,
        remove_name: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> RemoteListResult | RawResult:
        """Add a remote, remove one, or list the configured remotes."""
        cwd = self._resolve_repo(repo_path)

        if add_name and add_name.strip():
            if not add_url or not add_url.strip():
                raise PreconditionError("add_url is required when add_name is given")
            _check_ref(add_name, "remote name")
            _check_ref(add_url, "remote URL")
            async with self._locks.hold(cwd):
                result = await self._git(
                    cwd, "remote", "add", add_name, add_url, cancel=cancel
                )
            return _raw(result, f"Remote '{add_name}' added", "Failed to add remote")

        if remove_name and remove_name.strip():
            _check_ref(remove_name, "remote name")
            async with self._locks.hold(cwd):
                result = await self._git(
                    cwd, "remote", "remove", remove_name, cancel=cancel
                )
            return _raw(
                result, f"Remote '{remove_name}' removed", "Failed to remove remote"
            )

        async with self._locks.hold(cwd):
            result = await self._git(cwd, "remote", "-v", cancel=cancel)
        if not result.success:
            return _command_failure(RemoteListResult, "git remote", result)
        return RemoteListResult(success=True, remotes=parse_remote_list(result.stdout))

    # ── Stash ────────────────────────────────────────────────────────

    @_operation("git stash", RawResult)
    async def stash(
        self,
        *,
        repo_path: PathLike | None = None,
        operation: str = "push",
        message: str | None = None,
        stash_ref: str | None = None,
        include_untracked: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> StashListResult | RawResult:
        op = operation.strip().lower()
        if op not in _STASH_OPERATIONS:
            raise PreconditionError(
                f"Unknown stash operation: {operation}. "
                f"Use one of: {', '.join(_STASH_OPERATIONS)}"
            )

        match op:
            case "push":
                args = ["stash", "push"]
                if include_untracked:
                    args.append("-u")
                if message and message.strip():
                    args.extend(["-m", message])
            case "pop" | "apply" | "drop":
                args = ["stash", op]
                if stash_ref and stash_ref.strip():
                    _check_ref(stash_ref, "stash_ref")
                    args.append(stash_ref)
            case _:
                args = ["stash", op]

        cwd = self._resolve_repo(repo_path)
        async with self._locks.hold(cwd):
            result = await self._git(cwd, *args, cancel=cancel)

        if op == "list":
            if not result.success:
                return _command_failure(StashListResult, "git stash list", result)
            return StashListResult(
                success=True, stashes=parse_stash_list(result.stdout)
            )
        return _raw(result, f"Stash {op} completed", f"Stash {op} failed")

    # ── Helpers ──────────────────────────────────────────────────────

    def _resolve_repo(self, repo_path: PathLike | None) -> Path:
        if repo_path is None or not str(repo_path).strip():
            path = self._default_repo_path or Path.cwd()
        else:
            path = Path(repo_path).expanduser()
        path = path.resolve()
        if path.is_file():
            path = path.parent
        if not path.is_dir():
            raise InvalidRepositoryError(f"Directory does not exist: {path}")
        return path

    async def _git(
        self, cwd: Path, *args: str, cancel: asyncio.Event | None = None
    ) -> CommandResult:
        return await self._runner.run(args, cwd=cwd, cancel=cancel)

    async def _toplevel(self, cwd: Path, cancel: asyncio.Event | None) -> Path:
        """Root of the work tree containing cwd; cwd itself outside a repository."""
        result = await self._git(cwd, "rev-parse", "--show-toplevel", cancel=cancel)
        if not result.success or not result.stdout:
            return cwd
        return Path(result.stdout).resolve()

    async def _conflicted_files(
        self, cwd: Path, cancel: asyncio.Event | None
    ) -> list[str]:
        result = await self._git(
            cwd, "diff", "--name-only", "--diff-filter=U", cancel=cancel
        )
        return parse_name_list(result.stdout) if result.success else []


def _has_conflict(result: CommandResult) -> bool:
    return _CONFLICT_KEYWORD in result.stdout or _CONFLICT_KEYWORD in result.stderr


def _raw(result: CommandResult, ok_message: str, fail_message: str) -> RawResult:
    return RawResult(
        success=result.success,
        message=ok_message if result.success else fail_message,
        output=result.stdout or None,
        errors=result.stderr or None,
    )


def _command_failure(cls: type[R], operation: str, result: CommandResult) -> R:
    return cls(
        success=False,
        message=f"{operation} failed",
        output=result.stdout or None,
        errors=result.stderr or None,
    )


def _check_ref(value: str, what: str) -> None:
    """Reject empty values and values git would parse as an option."""
    if not value or not value.strip():
        raise PreconditionError(f"{what} must not be empty")
    if value.startswith("-"):
        raise PreconditionError(f"Invalid {what}: {value}")


def _check_branch_name(name: str) -> None:
    if not _BRANCH_NAME_RE.match(name) or name.startswith("-"):
        raise PreconditionError(f"Invalid branch name: {name}")


def _split_paths(files: str | Sequence[str]) -> list[str]:
    if isinstance(files, str):
        return shlex.split(files)
    return [f for f in files if f and f.strip()]
