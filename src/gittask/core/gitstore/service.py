"""
Git object store adapter.

Uses git plumbing commands to keep task records in the repository's object
database without touching the working tree or the index:

- `git hash-object -w` to store records as blobs
- `git ls-tree` / `git mktree` to read and build tree objects
- `git commit-tree` to create commits without checkout
- `git update-ref` to move the task ref (compare-and-swap on the old value)

Every write goes through `commit_tree_change()`, which produces exactly one
commit and advances the ref once. Either the ref moves and all edits become
visible, or it does not move and none do.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import cast

from gittask.core.gitstore.models import CommitInfo, Identity, TreeEntry

logger = logging.getLogger(__name__)

BLOB_MODE = "100644"


class GitError(Exception):
    """Exception raised when a git operation fails."""

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = ""):
        super().__init__(message)
        self.command = command
        self.stderr = stderr

    def __str__(self) -> str:
        message = super().__str__()
        if self.stderr:
            return f"{message}: {self.stderr}"
        return message


class RepositoryNotFoundError(GitError):
    """The working directory is not inside a git repository."""


class RefNotFoundError(GitError):
    """The task ref has never been created."""


class GitObjectStore:
    """
    Thin adapter over a repository's object database.

    Example:
        >>> store = GitObjectStore(Path("."))
        >>> blob = store.write_blob(b'{"id": "1"}')
        >>> store.commit_tree_change("refs/tasks/tasks", {"1": blob}, (), "create task")
    """

    def __init__(self, repo_dir: Path | None = None) -> None:
        """
        Initialize the adapter.

        Args:
            repo_dir: Directory inside the git repository.
                      Defaults to current working directory.
        """
        self.repo_dir = (repo_dir or Path.cwd()).resolve()

    def _run_git(
        self,
        args: list[str],
        *,
        check: bool = True,
        input_data: str | bytes | None = None,
        binary: bool = False,
    ) -> str | bytes:
        """
        Run a git command and return its stdout.

        Args:
            args: Git command arguments (without "git" prefix).
            check: Whether to raise on non-zero exit code.
            input_data: Optional stdin data to pass to the command.
            binary: Return raw bytes instead of stripped text.

        Raises:
            GitError: If the command fails and check=True.
        """
        cmd = ["git"] + args

        logger.debug("Running git command: %s", " ".join(cmd))

        if isinstance(input_data, str):
            input_data = input_data.encode("utf-8")

        try:
            result = subprocess.run(
                cmd,
                cwd=self.repo_dir,
                capture_output=True,
                timeout=60,
                input=input_data,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(f"Git command timed out: {' '.join(cmd)}", command=cmd) from e
        except FileNotFoundError as e:
            raise GitError("git not found in PATH", command=cmd) from e

        if check and result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            if "not a git repository" in stderr.lower():
                raise RepositoryNotFoundError(
                    f"Not a git repository: {self.repo_dir}", command=cmd, stderr=stderr
                )
            raise GitError(f"Git command failed: {' '.join(cmd)}", command=cmd, stderr=stderr)

        if binary:
            return result.stdout
        return result.stdout.decode("utf-8", errors="replace").strip()

    def _git(self, args: list[str], **kwargs: object) -> str:
        return cast(str, self._run_git(args, **kwargs))  # type: ignore[arg-type]

    def _git_bytes(self, args: list[str], **kwargs: object) -> bytes:
        return cast(bytes, self._run_git(args, binary=True, **kwargs))  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    # Repository and refs
    # ------------------------------------------------------------------

    def ensure_repository(self) -> None:
        """
        Check that repo_dir is inside a git repository.

        Raises:
            RepositoryNotFoundError: If it is not.
        """
        self._git(["rev-parse", "--git-dir"])

    def resolve_ref(self, ref: str) -> str | None:
        """
        Resolve a ref to the commit it points at.

        Returns:
            Commit SHA, or None if the ref has never been created.

        Raises:
            RepositoryNotFoundError: If repo_dir is not a git repository.
        """
        self.ensure_repository()
        sha = self._git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], check=False)
        return sha or None

    def update_ref(self, ref: str, new_sha: str, expected_old: str | None = None) -> None:
        """
        Point a ref at a commit.

        When expected_old is given, git only moves the ref if it still points
        at that commit. An empty expected value means "ref must not exist".
        """
        args = ["update-ref", ref, new_sha]
        if expected_old is not None:
            args.append(expected_old)
        self._git(args)

    def delete_ref(self, ref: str) -> None:
        self._git(["update-ref", "-d", ref])

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def write_blob(self, data: bytes) -> str:
        """Store content as a blob and return its SHA."""
        return self._git(["hash-object", "-w", "--stdin"], input_data=data)

    def read_blob(self, sha: str) -> bytes:
        return self._git_bytes(["cat-file", "blob", sha])

    def read_blobs(self, shas: list[str]) -> dict[str, bytes]:
        """
        Read many blobs with a single `git cat-file --batch` process.

        Returns:
            Mapping of SHA to blob content. Missing objects are omitted.
        """
        if not shas:
            return {}

        request = "".join(f"{sha}\n" for sha in shas)
        output = self._git_bytes(["cat-file", "--batch"], input_data=request)

        blobs: dict[str, bytes] = {}
        pos = 0
        while pos < len(output):
            header_end = output.index(b"\n", pos)
            header = output[pos:header_end].decode("utf-8").split()
            pos = header_end + 1
            if len(header) < 3 or header[1] == "missing":
                logger.warning("Object %s is missing from the object database", header[0])
                continue
            size = int(header[2])
            blobs[header[0]] = output[pos : pos + size]
            # Content is followed by a single LF
            pos += size + 1
        return blobs

    def read_tree(self, ref: str) -> dict[str, TreeEntry]:
        """
        Read the top-level entries of the tree behind a ref.

        Raises:
            RefNotFoundError: If the ref has never been created.
        """
        head = self.resolve_ref(ref)
        if head is None:
            raise RefNotFoundError(f"Reference not found: {ref}", command=None)
        return self._ls_tree(head)

    def _ls_tree(self, treeish: str) -> dict[str, TreeEntry]:
        output = self._git_bytes(["ls-tree", "-z", treeish])

        entries: dict[str, TreeEntry] = {}
        for record in output.split(b"\0"):
            if not record:
                continue
            meta, name = record.split(b"\t", 1)
            mode, obj_type, sha = meta.decode("utf-8").split()
            entry = TreeEntry(name=name.decode("utf-8"), mode=mode, type=obj_type, sha=sha)
            entries[entry.name] = entry
        return entries

    def walk_entries(self, ref: str) -> Iterator[TreeEntry]:
        """
        Yield the tree entries of a ref in tree order.

        Yields nothing if the ref does not exist yet. Consumers that look for
        a single entry can stop iterating as soon as they find it.
        """
        head = self.resolve_ref(ref)
        if head is None:
            return
        yield from self._ls_tree(head).values()

    def build_tree(
        self,
        base: Mapping[str, TreeEntry] | None,
        inserts: Mapping[str, str],
        removals: tuple[str, ...] | list[str] = (),
    ) -> str:
        """
        Write a new tree from an existing one plus edits.

        Args:
            base: Entries of the current tree, or None to start empty.
            inserts: Entry name to blob SHA; replaces existing entries.
            removals: Entry names to drop.

        Returns:
            SHA of the written tree.
        """
        entries = dict(base or {})
        for name in removals:
            entries.pop(name, None)
        for name, sha in inserts.items():
            if not name or "/" in name or "\0" in name:
                raise GitError(f"Invalid tree entry name: {name!r}")
            entries[name] = TreeEntry(name=name, mode=BLOB_MODE, type="blob", sha=sha)

        tree_input = "".join(
            f"{entry.mode} {entry.type} {entry.sha}\t{entry.name}\0"
            for entry in sorted(entries.values(), key=lambda e: e.name)
        )
        return self._git(["mktree", "-z"], input_data=tree_input)

    def commit(self, tree_sha: str, parent_sha: str | None, message: str) -> str:
        """Create a commit object without touching any ref."""
        args = ["commit-tree", tree_sha, "-m", message]
        if parent_sha:
            args[2:2] = ["-p", parent_sha]
        return self._git(args)

    def commit_tree_change(
        self,
        ref: str,
        inserts: Mapping[str, str],
        removals: tuple[str, ...] | list[str] = (),
        message: str = "update tasks",
    ) -> str:
        """
        Apply edits to the tree behind ref, commit, and advance the ref.

        Returns:
            SHA of the new commit.

        Raises:
            GitError: If any step fails, including a concurrent ref update.
        """
        parent_sha = self.resolve_ref(ref)
        base = self._ls_tree(parent_sha) if parent_sha else None

        tree_sha = self.build_tree(base, inserts, removals)
        logger.debug("Created tree: %s", tree_sha)

        commit_sha = self.commit(tree_sha, parent_sha, message)
        logger.debug("Created commit: %s", commit_sha)

        # Empty expected value makes git refuse if the ref appeared meanwhile
        self.update_ref(ref, commit_sha, parent_sha or "")
        logger.info("Committed to %s: %s (%s)", ref, commit_sha[:8], message)

        return commit_sha

    def log(self, ref: str, path: str | None = None) -> list[CommitInfo]:
        """
        Walk the commit ancestry of a ref, newest first.

        Args:
            ref: Ref to start from.
            path: Only include commits that changed this entry.
        """
        if self.resolve_ref(ref) is None:
            return []

        args = ["log", "--format=%H%x1f%an%x1f%ae%x1f%at%x1f%s%x1e", ref]
        if path is not None:
            args += ["--", path]

        commits = []
        for record in self._git(args).split("\x1e"):
            record = record.strip()
            if not record:
                continue
            sha, name, email, timestamp, subject = record.split("\x1f", 4)
            commits.append(
                CommitInfo(
                    sha=sha,
                    author=Identity(name=name, email=email),
                    timestamp=int(timestamp),
                    message=subject,
                )
            )
        return commits

    # ------------------------------------------------------------------
    # Configuration, identity and remotes
    # ------------------------------------------------------------------

    def get_config(self, key: str) -> str | None:
        """Read a git config value, or None if unset."""
        self.ensure_repository()
        value = self._git(["config", "--get", key], check=False)
        return value or None

    def set_config(self, key: str, value: str) -> None:
        self._git(["config", key, value])

    def unset_config(self, key: str) -> None:
        # Exit code 5 means the key was not set
        self._git(["config", "--unset", key], check=False)

    def identity(self) -> Identity:
        """
        Committer identity git would use for new commits.

        Raises:
            GitError: If no identity is configured.
        """
        ident = self._git(["var", "GIT_COMMITTER_IDENT"])
        # Format: "Name <email> timestamp tz"
        name, _, rest = ident.partition(" <")
        email = rest.split(">", 1)[0]
        return Identity(name=name.strip(), email=email)

    def remote_url(self, name: str) -> str:
        return self._git(["remote", "get-url", name])

    def list_remotes(self, remote: str | None = None) -> list[str]:
        """
        List fetch URLs of configured remotes.

        Args:
            remote: Only return the URL of this remote.
        """
        names = self._git(["remote"]).splitlines()
        if remote is not None:
            if remote not in names:
                raise GitError(f"Remote not found: {remote}")
            names = [remote]

        return [self.remote_url(name) for name in names if name]
