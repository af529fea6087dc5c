"""Decide whether the docs need reindexing and remember what was indexed.

The content marker is the Git revision of the docs checkout. After every
rebuild that reaches ``DONE`` the revision is written to a small TOML state
file together with the generation name, so the next run can skip the whole
pipeline when nothing changed.
"""

from __future__ import annotations

import datetime as dt
import subprocess
import typing as typ

import tomlkit

if typ.TYPE_CHECKING:
    from pathlib import Path


class StalenessError(RuntimeError):
    """Raised when the content revision or recorded marker cannot be read."""


class GitRevisionSource:
    """Read the revision of the docs checkout with ``git rev-parse``."""

    def __init__(self, repo: Path, *, ref: str = "HEAD", git_exe: str = "git") -> None:
        self.repo = repo
        self.ref = ref
        self.git_exe = git_exe

    def current(self) -> str:
        """Return the full object name ``ref`` resolves to."""
        try:
            result = subprocess.run(  # noqa: S603
                [self.git_exe, "rev-parse", "--verify", self.ref],
                cwd=self.repo,
                check=True,
                text=True,
                capture_output=True,
            )
        except FileNotFoundError as exc:
            msg = f"git executable '{self.git_exe}' not found"
            raise StalenessError(msg) from exc
        except subprocess.CalledProcessError as exc:
            msg = f"Could not resolve {self.ref} in {self.repo}: {exc.stderr.strip()}"
            raise StalenessError(msg) from exc
        return result.stdout.strip()


class IndexStateFile:
    """TOML file holding the revision and generation of the last good build."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def read_revision(self) -> str | None:
        """Return the recorded revision, or ``None`` if nothing was recorded."""
        try:
            doc = tomlkit.parse(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except tomlkit.exceptions.ParseError as exc:
            msg = f"Unable to parse index state TOML at {self.path}"
            raise StalenessError(msg) from exc
        table = doc.get("index")
        if not isinstance(table, tomlkit.items.Table):
            return None
        revision = table.get("revision")
        return str(revision) if revision else None

    def write(self, revision: str, generation: str, *, now: dt.datetime | None = None) -> None:
        """Record ``revision`` and ``generation`` as the live index."""
        try:
            doc = tomlkit.parse(self.path.read_text(encoding="utf-8"))
        except (FileNotFoundError, tomlkit.exceptions.ParseError):
            doc = tomlkit.document()

        table = doc.get("index")
        if not isinstance(table, tomlkit.items.Table):
            table = tomlkit.table()
        table["revision"] = revision
        table["generation"] = generation
        table["indexed_at"] = (now or dt.datetime.now(dt.UTC)).isoformat()
        doc["index"] = table

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(tomlkit.dumps(doc), encoding="utf-8")


class StalenessGate:
    """Compare the content revision with the one recorded at the last build."""

    def __init__(self, source: GitRevisionSource, state: IndexStateFile) -> None:
        self.source = source
        self.state = state

    def current_revision(self) -> str:
        """Return the content revision to record once the build is done."""
        return self.source.current()

    def needs_rebuild(self, force: bool = False, *, revision: str | None = None) -> bool:
        """Return ``True`` when forced or when the revisions differ.

        Parameters
        ----------
        force : bool, optional
            Skip the comparison and always rebuild.
        revision : str, optional
            Already-read content revision; read from the source when omitted.
        """
        if force:
            return True
        current = revision or self.current_revision()
        return current != self.state.read_revision()

    def record(self, revision: str, generation: str) -> None:
        """Store the marker of a rebuild that reached ``DONE``."""
        self.state.write(revision, generation)


__all__ = ["GitRevisionSource", "IndexStateFile", "StalenessError", "StalenessGate"]
