from __future__ import annotations

from pathlib import Path

from resx_autotranslate.diff import diff
from resx_autotranslate.resources import load_document

from conftest import write_resx


def _load(tmp_path: Path, name: str, entries):
    return load_document(write_resx(tmp_path / name, entries))


class TestDiff:
    def test_blank_target_counts_and_blank_reference_does_not(self, tmp_path: Path) -> None:
        reference = _load(tmp_path, "Strings.resx", [("A", "x"), ("B", "")])
        target = _load(tmp_path, "Strings.zh-CN.resx", [("A", "")])

        assert diff(reference, target) == {"A": "x"}

    def test_translated_entries_are_left_alone(self, tmp_path: Path) -> None:
        reference = _load(tmp_path, "Strings.resx", [("A", "x"), ("B", "y")])
        target = _load(tmp_path, "Strings.zh-CN.resx", [("A", "叉")])

        assert diff(reference, target) == {"B": "y"}

    def test_values_are_trimmed_and_whitespace_only_is_blank(self, tmp_path: Path) -> None:
        reference = _load(tmp_path, "Strings.resx", [("A", "  padded  "), ("B", "   "), ("C", "z")])
        target = _load(tmp_path, "Strings.zh-CN.resx", [("C", " \n ")])

        assert diff(reference, target) == {"A": "padded", "C": "z"}

    def test_order_follows_reference(self, tmp_path: Path) -> None:
        reference = _load(tmp_path, "Strings.resx", [("Zeta", "z"), ("Alpha", "a"), ("Mid", "m")])
        target = load_document(tmp_path / "Strings.zh-CN.resx", missing_ok=True)

        assert list(diff(reference, target)) == ["Zeta", "Alpha", "Mid"]

    def test_target_only_keys_are_ignored(self, tmp_path: Path) -> None:
        reference = _load(tmp_path, "Strings.resx", [("A", "x")])
        target = _load(tmp_path, "Strings.zh-CN.resx", [("A", "叉"), ("Manual", "")])

        assert diff(reference, target) == {}

    def test_keys_are_case_sensitive(self, tmp_path: Path) -> None:
        reference = _load(tmp_path, "Strings.resx", [("Title", "Main")])
        target = _load(tmp_path, "Strings.zh-CN.resx", [("title", "主")])

        assert diff(reference, target) == {"Title": "Main"}

    def test_binary_entries_are_never_candidates(self, tmp_path: Path) -> None:
        path = tmp_path / "Strings.resx"
        path.write_text(
            '<root><data name="Logo" type="System.Resources.ResXFileRef, System.Windows.Forms">'
            '<value>logo.png;System.Drawing.Bitmap</value></data>'
            '<data name="Caption"><value>Hi</value></data></root>',
            encoding="utf-8",
        )
        target = load_document(tmp_path / "Strings.zh-CN.resx", missing_ok=True)

        assert diff(load_document(path), target) == {"Caption": "Hi"}
