from __future__ import annotations

from tests.filename_rules import find_filename_violations, find_module_name_violations


def test_filename_conventions() -> None:
    violations = find_filename_violations()
    if violations:
        lines = ["Forbidden filenames detected:"]
        for item in violations:
            lines.append(f"- {item['path']} (pattern: {item['pattern']})")
        raise AssertionError("\n".join(lines))


def test_python_modules_are_snake_case() -> None:
    assert find_module_name_violations() == []


def test_rules_catch_markers(tmp_path) -> None:
    (tmp_path / "scripts").mkdir()
    (tmp_path / "scripts" / "final.py").write_text("", encoding="utf-8")
    (tmp_path / "scripts" / "RunAssess.py").write_text("", encoding="utf-8")
    (tmp_path / "notes-v2.md").write_text("", encoding="utf-8")

    flagged = [item["path"] for item in find_filename_violations(tmp_path)]
    assert flagged == ["notes-v2.md", "scripts/final.py"]
    assert find_module_name_violations(tmp_path) == ["scripts/RunAssess.py"]
