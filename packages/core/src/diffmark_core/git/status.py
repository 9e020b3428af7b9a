"""Changed-file status entries parsed from ``--name-status`` output."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FileStatus:
    """A changed file as reported by git: status letter plus path(s).

    ``code`` is the single status letter (``A``, ``M``, ``D``, ``R``, ...);
    the similarity score of renames and copies is kept in ``score``.
    """

    filename: str
    code: str = "M"
    old_filename: str | None = None
    score: int | None = None

    def has_code(self, code: str) -> bool:
        """Match against a status letter; ``*`` matches any status."""
        first = code[:1]
        return first == "*" or first == self.code

    def is_rename_of(self, filename: str) -> bool:
        return self.code == "R" and self.old_filename == filename

    @property
    def is_deleted(self) -> bool:
        return self.code == "D"

    @property
    def is_added(self) -> bool:
        return self.code == "A"

    @property
    def label(self) -> str:
        if self.old_filename:
            return f"{self.old_filename} -> {self.filename}"
        return self.filename


def parse_status_line(line: str) -> FileStatus | None:
    """Parse one ``--name-status`` line (tab separated); None for anything else."""
    parts = line.rstrip("\n").split("\t")
    if len(parts) < 2 or not parts[0] or not parts[0][0].isalpha():
        return None

    status = parts[0]
    code = status[0]
    score = int(status[1:]) if status[1:].isdigit() else None

    if code in ("R", "C") and len(parts) >= 3:
        return FileStatus(filename=parts[2], code=code, old_filename=parts[1], score=score)
    return FileStatus(filename=parts[1], code=code, score=score)


def parse_name_status(lines: list[str]) -> list[FileStatus]:
    files = []
    for line in lines:
        if not line.strip():
            continue
        status = parse_status_line(line)
        if status is not None:
            files.append(status)
    return files
