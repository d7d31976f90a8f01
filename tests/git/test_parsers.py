"""Tests for the git output parsers."""

from vcsflow.git.parsers import (
    LOG_FORMAT,
    parse_branch_list,
    parse_conflict_sections,
    parse_log,
    parse_name_list,
    parse_porcelain_status,
    parse_remote_list,
    parse_stash_list,
    status_kind,
)


class TestStatusKind:
    def test_known_codes(self):
        assert status_kind("M") == "modified"
        assert status_kind("A") == "added"
        assert status_kind("D") == "deleted"
        assert status_kind("R") == "renamed"
        assert status_kind("C") == "copied"
        assert status_kind("U") == "unmerged"

    def test_unknown_code_never_raises(self):
        assert status_kind("T") == "unknown"
        assert status_kind("") == "unknown"


class TestPorcelainStatus:
    def test_empty_output(self):
        status = parse_porcelain_status("")
        assert status.branch == ""
        assert status.upstream is None
        assert status.is_clean is True

    def test_branch_headers(self):
        text = (
            "# branch.oid 0123abcd\n"
            "# branch.head main\n"
            "# branch.upstream origin/main\n"
            "# branch.ab +3 -1\n"
        )
        status = parse_porcelain_status(text)
        assert status.branch == "main"
        assert status.upstream == "origin/main"
        assert status.ahead == 3
        assert status.behind == 1

    def test_detached_head(self):
        status = parse_porcelain_status("# branch.oid abc\n# branch.head (detached)\n")
        assert status.branch == "(detached)"

    def test_staged_and_unstaged_same_file(self):
        text = "1 MM N... 100644 100644 100644 aaa bbb src/app.py\n"
        status = parse_porcelain_status(text)
        assert status.staged[0].path == "src/app.py"
        assert status.staged[0].status == "modified"
        assert status.unstaged[0].path == "src/app.py"

    def test_path_with_spaces(self):
        text = "1 A. N... 000000 100644 100644 000 aaa docs/my notes.md\n"
        status = parse_porcelain_status(text)
        assert status.staged[0].path == "docs/my notes.md"
        assert status.staged[0].status == "added"

    def test_rename_reports_new_path(self):
        text = "2 R. N... 100644 100644 100644 aaa bbb R100 new name.py\told.py\n"
        status = parse_porcelain_status(text)
        assert status.staged[0].path == "new name.py"
        assert status.staged[0].status == "renamed"
        assert status.unstaged == []

    def test_unmerged_goes_to_conflicted(self):
        text = "u UU N... 100644 100644 100644 100644 h1 h2 h3 src/conflict.py\n"
        status = parse_porcelain_status(text)
        assert status.conflicted == ["src/conflict.py"]
        assert status.staged == []
        assert status.unstaged == []
        assert status.is_clean is False

    def test_untracked(self):
        status = parse_porcelain_status("? new file.txt\n? build/\n")
        assert status.untracked == ["new file.txt", "build/"]

    def test_ignored_and_malformed_lines_skipped(self):
        text = "! ignored.log\n1 M.\nsomething else\n# branch.future x\n"
        status = parse_porcelain_status(text)
        assert status.is_clean is True


class TestConflictSections:
    def test_no_markers(self):
        assert parse_conflict_sections("plain file\nno conflicts\n") == []

    def test_single_region(self):
        content = (
            "before\n"
            "<<<<<<< HEAD\n"
            "ours line\n"
            "=======\n"
            "theirs line\n"
            ">>>>>>> feature\n"
            "after\n"
        )
        sections = parse_conflict_sections(content)
        assert len(sections) == 1
        section = sections[0]
        assert section.ours == "ours line"
        assert section.theirs == "theirs line"
        assert section.base is None
        assert section.offset == content.index("<<<<<<<")
        matched = content[section.offset : section.offset + section.length]
        assert matched.startswith("<<<<<<< HEAD")
        assert matched.endswith(">>>>>>> feature")

    def test_multiple_regions_in_order(self):
        content = (
            "<<<<<<< HEAD\na\n=======\nb\n>>>>>>> x\n"
            "middle\n"
            "<<<<<<< HEAD\nc\n=======\nd\n>>>>>>> x\n"
        )
        sections = parse_conflict_sections(content)
        assert [(s.ours, s.theirs) for s in sections] == [("a", "b"), ("c", "d")]
        assert sections[0].offset < sections[1].offset

    def test_diff3_base_section(self):
        content = (
            "<<<<<<< ours\n"
            "mine\n"
            "||||||| base\n"
            "base line\n"
            "=======\n"
            "yours\n"
            ">>>>>>> theirs\n"
        )
        section = parse_conflict_sections(content)[0]
        assert section.ours == "mine"
        assert section.base == "base line"
        assert section.theirs == "yours"

    def test_crlf_line_endings(self):
        content = "<<<<<<< HEAD\r\nmine\r\n=======\r\nyours\r\n>>>>>>> b\r\n"
        section = parse_conflict_sections(content)[0]
        assert section.ours == "mine"
        assert section.theirs == "yours"

    def test_markdown_underline_inside_region(self):
        content = (
            "<<<<<<< HEAD\n"
            "title\n"
            "========\n"
            "=======\n"
            "other\n"
            ">>>>>>> feature\n"
        )
        section = parse_conflict_sections(content)[0]
        assert section.ours == "title\n========"
        assert section.theirs == "other"

    def test_markers_mid_line_are_text(self):
        content = "x <<<<<<< a\nmine\n=======\nyours\n>>>>>>> b\n"
        assert parse_conflict_sections(content) == []

    def test_unterminated_region_ignored(self):
        content = "<<<<<<< HEAD\nmine\n=======\nyours\n"
        assert parse_conflict_sections(content) == []


class TestStashList:
    def test_on_and_wip_forms(self):
        text = (
            "stash@{0}: On main: save work\n"
            "stash@{1}: WIP on feature/x: 1a2b3c4 Half done\n"
        )
        entries = parse_stash_list(text)
        assert [e.ref for e in entries] == ["stash@{0}", "stash@{1}"]
        assert entries[0].branch == "main"
        assert entries[0].message == "save work"
        assert entries[1].branch == "feature/x"
        assert entries[1].message == "1a2b3c4 Half done"

    def test_unrecognized_lines_skipped(self):
        assert parse_stash_list("garbage\n\n") == []


class TestRemoteList:
    def test_fetch_and_push(self):
        text = (
            "origin\thttps://example.com/a.git (fetch)\n"
            "origin\thttps://example.com/a.git (push)\n"
            "upstream\tgit@example.com:b.git (fetch)\n"
        )
        remotes = parse_remote_list(text)
        assert [(r.name, r.url, r.direction) for r in remotes] == [
            ("origin", "https://example.com/a.git", "fetch"),
            ("origin", "https://example.com/a.git", "push"),
            ("upstream", "git@example.com:b.git", "fetch"),
        ]

    def test_duplicates_collapsed(self):
        line = "origin\thttps://example.com/a.git (fetch)\n"
        assert len(parse_remote_list(line * 3)) == 1

    def test_empty(self):
        assert parse_remote_list("") == []


class TestBranchList:
    def test_current_and_remote(self):
        text = (
            "  develop\n"
            "* main\n"
            "  remotes/origin/HEAD -> origin/main\n"
            "  remotes/origin/main\n"
        )
        branches = parse_branch_list(text)
        assert [b.name for b in branches] == ["develop", "main", "remotes/origin/main"]
        assert [b.is_current for b in branches] == [False, True, False]
        assert branches[2].is_remote is True

    def test_detached_head_skipped(self):
        text = "* (HEAD detached at abc1234)\n  main\n"
        branches = parse_branch_list(text)
        assert [b.name for b in branches] == ["main"]


class TestLog:
    def test_format_fields(self):
        assert LOG_FORMAT == "%H||%h||%an||%ae||%aI||%s"

    def test_parse_entries(self):
        text = (
            "abc123full||abc123||Ada Lovelace||ada@example.com"
            "||2024-05-01T10:00:00+02:00||Initial commit\n"
            "short line without fields\n"
        )
        entries = parse_log(text)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.hash == "abc123full"
        assert entry.short_hash == "abc123"
        assert entry.author == "Ada Lovelace"
        assert entry.email == "ada@example.com"
        assert entry.date == "2024-05-01T10:00:00+02:00"
        assert entry.message == "Initial commit"

    def test_subject_may_contain_delimiter(self):
        text = "h||s||a||e||d||merge || fix"
        assert parse_log(text)[0].message == "merge || fix"


class TestNameList:
    def test_blank_lines_dropped(self):
        assert parse_name_list("a.py\n\n  b.py  \n") == ["a.py", "b.py"]
