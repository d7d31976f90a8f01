"""Parsers that turn git's textual output into typed records.

git's machine-readable formats are a de facto wire protocol, so each one is
handled by a single named function here. Every parser is tolerant: lines it
does not recognise are skipped rather than rejected, since newer git versions
may add line types or fields.
"""

import re

from vcsflow.git.models import (
    BranchEntry,
    CommitEntry,
    ConflictSection,
    FileChange,
    FileStatus,
    RemoteEntry,
    RepositoryStatus,
    StashEntry,
)

LOG_DELIMITER = "||"
LOG_FORMAT = LOG_DELIMITER.join(("%H", "%h", "%an", "%ae", "%aI", "%s"))

_BRANCH_AB_RE = re.compile(r"#\s*branch\.ab\s*\+(?P<ahead>\d+)\s*-(?P<behind>\d+)")
_REMOTE_RE = re.compile(r"(?P<name>\S+)\s+(?P<url>\S+)\s+\((?P<direction>fetch|push)\)")
_STASH_RE = re.compile(
    r"(?P<ref>stash@\{\d+\}):\s*(?:WIP on|On)\s*(?P<branch>[^:]+):\s*(?P<message>.*)"
)
# Markers only count at the start of a line
_CONFLICT_RE = re.compile(
    r"^<{7}[^\n]*\n"
    r"(?P<ours>.*?)"
    r"(?:^\|{7}[^\n]*\n(?P<base>.*?))?"
    r"^={7}\r?\n"
    r"(?P<theirs>.*?)"
    r"^>{7}[^\n]*",
    re.DOTALL | re.MULTILINE,
)

_STATUS_CODES: dict[str, FileStatus] = {
    "M": "modified",
    "A": "added",
    "D": "deleted",
    "R": "renamed",
    "C": "copied",
    "U": "unmerged",
}

# Field counts (maxsplit) for porcelain v2 entry lines; the path is the tail.
# 1 XY sub mH mI mW hH hI path
# 2 XY sub mH mI mW hH hI Xscore path<TAB>origPath
# u XY sub m1 m2 m3 mW h1 h2 h3 path
_ORDINARY_SPLIT = 8
_RENAME_SPLIT = 9
_UNMERGED_SPLIT = 10


def status_kind(code: str) -> FileStatus:
    """Map a one-letter porcelain code to a FileStatus; unknown letters never raise."""
    return _STATUS_CODES.get(code, "unknown")


def parse_porcelain_status(text: str) -> RepositoryStatus:
    """Parse `git status --porcelain=v2 --branch` into a RepositoryStatus."""
    branch = ""
    upstream = None
    ahead = 0
    behind = 0
    staged: list[FileChange] = []
    unstaged: list[FileChange] = []
    untracked: list[str] = []
    conflicted: list[str] = []

    for line in text.splitlines():
        if line.startswith("# branch.head "):
            branch = line.split(" ", 2)[2]
        elif line.startswith("# branch.upstream "):
            upstream = line.split(" ", 2)[2]
        elif line.startswith("# branch.ab"):
            match = _BRANCH_AB_RE.match(line)
            if match:
                ahead = int(match.group("ahead"))
                behind = int(match.group("behind"))
        elif line.startswith("1 ") or line.startswith("2 "):
            max_split = _RENAME_SPLIT if line.startswith("2 ") else _ORDINARY_SPLIT
            parts = line.split(" ", max_split)
            if len(parts) < max_split + 1:
                continue
            xy = parts[1]
            path = parts[max_split]
            # Renames carry "new<TAB>orig"; report the new path
            if "\t" in path:
                path = path.split("\t", 1)[0]

            x_status = xy[0] if len(xy) > 0 else "."
            y_status = xy[1] if len(xy) > 1 else "."
            if x_status != ".":
                staged.append(FileChange(path=path, status=status_kind(x_status)))
            if y_status != ".":
                unstaged.append(FileChange(path=path, status=status_kind(y_status)))
        elif line.startswith("u "):
            parts = line.split(" ", _UNMERGED_SPLIT)
            if len(parts) == _UNMERGED_SPLIT + 1:
                conflicted.append(parts[_UNMERGED_SPLIT])
        elif line.startswith("? "):
            untracked.append(line[2:].strip())

    return RepositoryStatus(
        branch=branch,
        upstream=upstream,
        ahead=ahead,
        behind=behind,
        staged=staged,
        unstaged=unstaged,
        untracked=untracked,
        conflicted=conflicted,
    )


def parse_conflict_sections(content: str) -> list[ConflictSection]:
    """Extract every <<<<<<< / ======= / >>>>>>> region from file content."""
    sections: list[ConflictSection] = []
    for match in _CONFLICT_RE.finditer(content):
        base = match.group("base")
        sections.append(
            ConflictSection(
                ours=match.group("ours").strip(),
                theirs=match.group("theirs").strip(),
                base=base.strip() if base is not None else None,
                offset=match.start(),
                length=match.end() - match.start(),
            )
        )
    return sections


def parse_stash_list(text: str) -> list[StashEntry]:
    """Parse `git stash list` lines such as `stash@{0}: On main: wip`."""
    entries: list[StashEntry] = []
    for line in text.splitlines():
        match = _STASH_RE.search(line)
        if not match:
            continue
        entries.append(
            StashEntry(
                ref=match.group("ref"),
                branch=match.group("branch").strip(),
                message=match.group("message").strip(),
            )
        )
    return entries


def parse_remote_list(text: str) -> list[RemoteEntry]:
    """Parse `git remote -v`, collapsing duplicates by (name, direction)."""
    remotes: list[RemoteEntry] = []
    seen: set[tuple[str, str]] = set()
    for line in text.splitlines():
        match = _REMOTE_RE.search(line)
        if not match:
            continue
        key = (match.group("name"), match.group("direction"))
        if key in seen:
            continue
        seen.add(key)
        remotes.append(
            RemoteEntry(
                name=match.group("name"),
                url=match.group("url"),
                direction=match.group("direction"),  # type: ignore[arg-type]
            )
        )
    return remotes


def parse_branch_list(text: str) -> list[BranchEntry]:
    """Parse `git branch [-a]` output."""
    branches: list[BranchEntry] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        is_current = line.startswith("* ")
        name = line.lstrip("* ").strip()
        # Skip detached HEAD
        if name.startswith("("):
            continue
        # Skip HEAD pointers like "remotes/origin/HEAD -> origin/main"
        if " -> " in name:
            continue
        branches.append(
            BranchEntry(
                name=name,
                is_current=is_current,
                is_remote=name.startswith("remotes/"),
            )
        )
    return branches


def parse_log(text: str) -> list[CommitEntry]:
    """Parse `git log --format=LOG_FORMAT` output."""
    entries: list[CommitEntry] = []
    for line in text.splitlines():
        parts = line.split(LOG_DELIMITER, 5)
        if len(parts) != 6:
            continue
        entries.append(
            CommitEntry(
                hash=parts[0],
                short_hash=parts[1],
                author=parts[2],
                email=parts[3],
                date=parts[4],
                message=parts[5],
            )
        )
    return entries


def parse_name_list(text: str) -> list[str]:
    """Split newline-separated path or line output, dropping blanks."""
    return [line.strip() for line in text.splitlines() if line.strip()]
