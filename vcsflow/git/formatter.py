"""Pure functions to cap git output and render results as text."""

from vcsflow.git.models import (
    AddResult,
    BranchEntry,
    BranchListResult,
    CheckoutResult,
    CommitEntry,
    CommitResult,
    ConflictResult,
    DiffResult,
    GitResult,
    LogResult,
    RemoteEntry,
    RemoteListResult,
    RepositoryStatus,
    StashEntry,
    StashListResult,
    StatusResult,
)

_STATUS_LETTER = {
    "modified": "M",
    "added": "A",
    "deleted": "D",
    "renamed": "R",
    "copied": "C",
    "unmerged": "U",
    "unknown": "?",
}


def truncate_text(text: str, max_length: int, notice: str = "(truncated)") -> str:
    """Cap text at max_length characters, appending a truncation notice."""
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}\n... {notice}"


def format_status(status: RepositoryStatus) -> str:
    """Format RepositoryStatus for display."""
    lines: list[str] = []

    branch_line = f"Branch: {status.branch or '(unknown)'}"
    if status.upstream:
        tracking_parts = [f"tracking {status.upstream}"]
        if status.ahead:
            tracking_parts.append(f"{status.ahead} ahead")
        if status.behind:
            tracking_parts.append(f"{status.behind} behind")
        branch_line += f" ({', '.join(tracking_parts)})"
    lines.append(branch_line)

    if status.conflicted:
        lines.append("")
        lines.append("Conflicted:")
        for path in status.conflicted:
            lines.append(f"  U {path}")

    if status.staged:
        lines.append("")
        lines.append("Staged:")
        for change in status.staged:
            lines.append(f"  {_STATUS_LETTER[change.status]} {change.path}")

    if status.unstaged:
        lines.append("")
        lines.append("Unstaged:")
        for change in status.unstaged:
            lines.append(f"  {_STATUS_LETTER[change.status]} {change.path}")

    if status.untracked:
        lines.append("")
        lines.append("Untracked:")
        for path in status.untracked:
            lines.append(f"  {path}")

    if status.is_clean:
        lines.append("")
        lines.append("Working tree clean")

    return "\n".join(lines)


def format_branches(branches: list[BranchEntry], max_display: int = 30) -> str:
    """Format branch list for display."""
    if not branches:
        return "No branches found."

    lines: list[str] = ["Branches:"]
    for branch in branches[:max_display]:
        marker = "* " if branch.is_current else "  "
        lines.append(f"{marker}{branch.name}")

    if len(branches) > max_display:
        lines.append(f"\n... and {len(branches) - max_display} more")
    return "\n".join(lines)


def format_log(entries: list[CommitEntry]) -> str:
    """Format log entries for display."""
    if not entries:
        return "No commits found."

    lines: list[str] = ["Recent commits:"]
    for entry in entries:
        lines.append(f"  {entry.short_hash} {entry.message}")
        lines.append(f"    {entry.author} <{entry.email}>, {entry.date}")
    return "\n".join(lines)


def format_remotes(remotes: list[RemoteEntry]) -> str:
    if not remotes:
        return "No remotes configured."
    lines = ["Remotes:"]
    for remote in remotes:
        lines.append(f"  {remote.name}\t{remote.url} ({remote.direction})")
    return "\n".join(lines)


def format_stashes(stashes: list[StashEntry]) -> str:
    if not stashes:
        return "No stashes."
    lines = ["Stashes:"]
    for stash in stashes:
        lines.append(f"  {stash.ref} [{stash.branch}] {stash.message}")
    return "\n".join(lines)


def format_conflicts(result: ConflictResult) -> str:
    """Format a merge/pull conflict report."""
    if not (result.has_conflicts or result.conflicted_files):
        return format_result(result)

    lines = [f"⚠️ {result.message}"]
    for f in result.conflicted_files:
        lines.append(f"  • {f}")
    for detail in result.conflicts:
        lines.append("")
        if detail.full_content is None:
            lines.append(f"{detail.file_path}: not readable in the work tree")
            continue
        lines.append(f"{detail.file_path}: {len(detail.sections)} conflict(s)")
        for i, section in enumerate(detail.sections, 1):
            lines.append(f"  [{i}] ours:   {_first_line(section.ours)}")
            lines.append(f"      theirs: {_first_line(section.theirs)}")
    if result.suggestion:
        lines.append("")
        lines.append(result.suggestion)
    return "\n".join(lines)


def format_result(result: GitResult, emoji: str = "") -> str:
    """Format a GitResult with success/failure indicator."""
    icon = emoji or ("✅" if result.success else "❌")
    text = f"{icon} {result.message or ('Done' if result.success else 'Failed')}"
    details = result.errors if not result.success and result.errors else result.output
    if details:
        text += f"\n{details}"
    return text


def render(result: GitResult) -> str:
    """Render any operation result as display text."""
    if not result.success and not isinstance(result, ConflictResult):
        return format_result(result)

    match result:
        case StatusResult(status=status) if status is not None:
            return format_status(status)
        case BranchListResult(branches=branches):
            return format_branches(branches)
        case ConflictResult():
            return format_conflicts(result)
        case LogResult(lines=lines) if lines:
            return "\n".join(lines)
        case LogResult(commits=commits):
            return format_log(commits)
        case DiffResult(changed_files=files, diff=None):
            return "\n".join(files) if files else "No changes to display."
        case DiffResult(diff=diff, stats=stats):
            if not diff:
                return "No changes to display."
            return f"{stats}\n\n{diff}" if stats else diff
        case RemoteListResult(remotes=remotes):
            return format_remotes(remotes)
        case StashListResult(stashes=stashes):
            return format_stashes(stashes)
        case CommitResult(short_hash=short_hash) if short_hash:
            return f"✅ {result.message} ({short_hash})"
        case CheckoutResult(current_branch=branch) if branch:
            return f"✅ {result.message} (now on {branch})"
        case AddResult(staged_files=staged):
            text = format_result(result)
            if staged:
                text += "\nStaged: " + ", ".join(staged)
            return text
        case _:
            return format_result(result)


def format_help() -> str:
    """Return help text listing all commands."""
    return (
        "Commands:\n"
        "\n"
        "status — Show status\n"
        "add <files...> [--no-deleted] — Stage files\n"
        "commit <msg> [--all] [--amend] [--allow-empty] — Commit\n"
        "branch [--remote] — List branches\n"
        "branch <name> — Create branch\n"
        "branch --delete <name> [--force] — Delete branch\n"
        "checkout <target> [--create] [-- files...] — Switch branch or restore files\n"
        "merge <branch> [--no-ff] [--abort-on-conflict] — Merge branch\n"
        "conflicts — Show conflict details\n"
        "resolve <file> <ours|theirs|manual> [--content-file PATH] — Resolve a file\n"
        "abort — Abort in-progress merge\n"
        "continue [msg] — Complete merge after resolving\n"
        "pull [remote] [branch] [--rebase] [--ff-only] — Pull\n"
        "push [remote] [branch] [--force] [--set-upstream] [--tags] — Push\n"
        "fetch [remote] [--all] [--prune] — Fetch\n"
        "log [--max N] [--author A] [--since S] [--oneline] [-- path] — History\n"
        "diff [--staged] [--name-only] [from [to]] [-- file] — Show changes\n"
        "remote [--add NAME URL] [--remove NAME] — Manage remotes\n"
        "stash [push|pop|apply|list|drop|clear] [ref] [--message M] [--untracked]\n"
        "help — This message\n"
        "\n"
        "Add --json to any command for the raw result envelope."
    )


def _first_line(text: str) -> str:
    first = text.splitlines()[0] if text else ""
    return first if len(first) <= 60 else first[:57] + "..."
