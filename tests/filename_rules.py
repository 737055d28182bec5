from __future__ import annotations

from pathlib import Path
import re

# Names describe purpose: no phase/final/v<N>/tmp/old/new markers.
FORBIDDEN_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (raw, re.compile(raw))
    for raw in (
        r"(?i)\bphase[\W_]*\d",
        r"(?i)\bfinal\b",
        r"(?i)\bv\d+\b",
        r"(?i)\btmp\b",
        r"(?i)(?:^|_)(?:old|new)(?:_|\.|$)",
    )
]
MODULE_NAME = re.compile(r"^[a-z][a-z0-9_]*\.py$")
SOURCE_ROOTS = ("packages", "apps", "scripts", "tests")

EXCLUDE_DIRS = {".git", ".venv", "__pycache__", ".pytest_cache", "build", "dist"}


def _is_excluded(rel_path: Path) -> bool:
    return any(part in EXCLUDE_DIRS or part.endswith(".egg-info") for part in rel_path.parts)


def _repo_files(root: Path):
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        rel_path = path.relative_to(root)
        if not _is_excluded(rel_path):
            yield rel_path


def find_filename_violations(repo_root: Path | None = None) -> list[dict[str, str]]:
    root = repo_root or Path(__file__).resolve().parents[1]
    violations: list[dict[str, str]] = []
    for rel_path in _repo_files(root):
        for raw_pattern, compiled in FORBIDDEN_PATTERNS:
            if compiled.search(rel_path.name):
                violations.append({"path": rel_path.as_posix(), "pattern": raw_pattern})
                break
    return violations


def find_module_name_violations(repo_root: Path | None = None) -> list[str]:
    """Python files under the source roots must be importable snake_case names."""
    root = repo_root or Path(__file__).resolve().parents[1]
    return [
        rel_path.as_posix()
        for rel_path in _repo_files(root)
        if rel_path.parts[0] in SOURCE_ROOTS
        and rel_path.suffix == ".py"
        and rel_path.name != "__init__.py"
        and not MODULE_NAME.match(rel_path.name)
    ]


__all__ = ["find_filename_violations", "find_module_name_violations", "FORBIDDEN_PATTERNS"]
