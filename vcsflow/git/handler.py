"""Text command handler: routes `status`, `merge feature --no-ff`, ... to GitService."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from vcsflow.git import formatter

if TYPE_CHECKING:
    from vcsflow.git.models import GitResult
    from vcsflow.git.service import GitService

logger = structlog.get_logger()

# Options that consume following tokens, with how many they take
_VALUE_OPTIONS: dict[str, int] = {
    "--max": 1,
    "--author": 1,
    "--since": 1,
    "--message": 1,
    "-m": 1,
    "--delete": 1,
    "--add": 2,
    "--remove": 1,
    "--content-file": 1,
}


class CommandArgs(BaseModel):
    """Tokens of one command line, split into positionals, flags and options."""

    model_config = ConfigDict(frozen=True)

    positionals: list[str] = []
    flags: frozenset[str] = frozenset()
    options: dict[str, list[str]] = {}
    paths: list[str] = []
    as_json: bool = False

    def has(self, *names: str) -> bool:
        return any(n in self.flags for n in names)

    def option(self, *names: str) -> str | None:
        for name in names:
            values = self.options.get(name)
            if values:
                return values[0]
        return None

    def positional(self, index: int) -> str | None:
        return self.positionals[index] if index < len(self.positionals) else None


def parse_command(text: str) -> tuple[str, CommandArgs]:
    """Split a command line into its subcommand and parsed arguments.

    Raises ValueError on malformed quoting or a missing option value.
    """
    tokens = shlex.split(text)
    if not tokens:
        return "", CommandArgs()

    subcommand, rest = tokens[0].lower(), tokens[1:]
    positionals: list[str] = []
    flags: set[str] = set()
    options: dict[str, list[str]] = {}
    paths: list[str] = []
    as_json = False

    i = 0
    while i < len(rest):
        tok = rest[i]
        if tok == "--":
            paths = rest[i + 1 :]
            break
        if tok == "--json":
            as_json = True
            i += 1
        elif tok in _VALUE_OPTIONS:
            count = _VALUE_OPTIONS[tok]
            values = rest[i + 1 : i + 1 + count]
            if len(values) < count:
                raise ValueError(f"{tok} expects {count} value(s)")
            options[tok] = values
            i += 1 + count
        elif tok.startswith("-") and len(tok) > 1:
            flags.add(tok)
            i += 1
        else:
            positionals.append(tok)
            i += 1

    return subcommand, CommandArgs(
        positionals=positionals,
        flags=frozenset(flags),
        options=options,
        paths=paths,
        as_json=as_json,
    )


class GitCommandHandler:
    def __init__(self, service: GitService, repo_path: Path | None = None) -> None:
        self._service = service
        self._repo_path = repo_path

    async def handle_command(self, text: str) -> str:
        """Route one command line to the matching GitService operation."""
        try:
            subcommand, args = parse_command(text)
        except ValueError as e:
            return f"❌ Could not parse command: {e}"

        logger.debug("git_command", subcommand=subcommand, as_json=args.as_json)
        result = await self._dispatch(subcommand, args)
        if isinstance(result, str):
            return result
        if args.as_json:
            return result.model_dump_json(indent=2)
        return formatter.render(result)

    async def _dispatch(self, subcommand: str, args: CommandArgs) -> GitResult | str:
        service = self._service
        repo = self._repo_path

        match subcommand:
            case "" | "status":
                return await service.status(repo_path=repo)
            case "add":
                files = args.positionals + args.paths
                if not files:
                    return "Usage: add <files...> [--no-deleted]"
                return await service.add(
                    files, repo_path=repo, include_deleted=not args.has("--no-deleted")
                )
            case "commit":
                message = args.option("--message", "-m") or " ".join(args.positionals)
                if not message:
                    return "Usage: commit <message> [--all] [--amend] [--allow-empty]"
                return await service.commit(
                    message,
                    repo_path=repo,
                    stage_all=args.has("--all", "-a"),
                    amend=args.has("--amend"),
                    allow_empty=args.has("--allow-empty"),
                )
            case "branch":
                return await service.branch(
                    repo_path=repo,
                    new_branch=args.positional(0),
                    delete_branch=args.option("--delete"),
                    force=args.has("--force", "-f"),
                    include_remote=args.has("--remote", "-a", "--all"),
                )
            case "checkout":
                target = args.positional(0)
                if not target:
                    return "Usage: checkout <target> [--create] [-- files...]"
                return await service.checkout(
                    target,
                    repo_path=repo,
                    create_branch=args.has("--create", "-b"),
                    files=args.paths or None,
                )
            case "merge":
                if args.has("--abort"):
                    return await service.abort_merge(repo_path=repo)
                branch = args.positional(0)
                if not branch:
                    return "Usage: merge <branch> [--no-ff] [--abort-on-conflict]"
                return await service.merge(
                    branch,
                    repo_path=repo,
                    no_fast_forward=args.has("--no-ff"),
                    abort_on_conflict=args.has("--abort-on-conflict"),
                )
            case "conflicts":
                return await service.get_conflicts(repo_path=repo)
            case "resolve":
                return await self._resolve(args)
            case "abort":
                return await service.abort_merge(repo_path=repo)
            case "continue":
                message = args.option("--message", "-m") or " ".join(args.positionals)
                return await service.continue_merge(message or None, repo_path=repo)
            case "pull":
                return await service.pull(
                    repo_path=repo,
                    remote=args.positional(0) or "origin",
                    branch=args.positional(1),
                    rebase=args.has("--rebase"),
                    fast_forward_only=args.has("--ff-only"),
                )
            case "push":
                return await service.push(
                    repo_path=repo,
                    remote=args.positional(0) or "origin",
                    branch=args.positional(1),
                    force=args.has("--force", "-f"),
                    set_upstream=args.has("--set-upstream", "-u"),
                    tags=args.has("--tags"),
                )
            case "fetch":
                return await service.fetch(
                    repo_path=repo,
                    remote=args.positional(0) or "origin",
                    all_remotes=args.has("--all"),
                    prune=args.has("--prune"),
                )
            case "log":
                max_count = args.option("--max")
                if max_count is not None and not max_count.isdigit():
                    return f"❌ --max expects a number, got {max_count}"
                return await service.log(
                    repo_path=repo,
                    max_count=int(max_count) if max_count else 10,
                    path=args.paths[0] if args.paths else None,
                    author=args.option("--author"),
                    since=args.option("--since"),
                    one_line=args.has("--oneline"),
                )
            case "diff":
                return await service.diff(
                    repo_path=repo,
                    staged=args.has("--staged", "--cached"),
                    file=args.paths[0] if args.paths else None,
                    from_ref=args.positional(0),
                    to_ref=args.positional(1),
                    name_only=args.has("--name-only"),
                )
            case "remote":
                added = args.options.get("--add")
                return await service.remote(
                    repo_path=repo,
                    add_name=added[0] if added else None,
                    add_url=added[1] if added else None,
                    remove_name=args.option("--remove"),
                )
            case "stash":
                return await service.stash(
                    repo_path=repo,
                    operation=args.positional(0) or "push",
                    message=args.option("--message", "-m"),
                    stash_ref=args.positional(1),
                    include_untracked=args.has("--untracked", "-u"),
                )
            case "help":
                return formatter.format_help()
            case _:
                return f"Unknown command: {subcommand}\n\n{formatter.format_help()}"

    async def _resolve(self, args: CommandArgs) -> GitResult | str:
        file_path = args.positional(0)
        strategy = args.positional(1)
        if not file_path or not strategy:
            return "Usage: resolve <file> <ours|theirs|manual> [--content-file PATH]"

        content = None
        content_file = args.option("--content-file")
        if content_file:
            try:
                content = Path(content_file).expanduser().read_text(encoding="utf-8")
            except OSError as e:
                return f"❌ Could not read {content_file}: {e}"

        return await self._service.resolve_conflict(
            file_path, strategy, repo_path=self._repo_path, resolved_content=content
        )
