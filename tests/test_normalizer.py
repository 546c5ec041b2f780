"""Tests for raw-text normalization and the correction table."""

from pathlib import Path

import yaml

from lumen_extract.extraction.normalizer import (
    DEFAULT_CORRECTIONS,
    TextNormalizer,
    load_corrections,
)


class TestTextNormalizer:
    """Tests for TextNormalizer with the built-in corrections."""

    def test_collapses_whitespace_and_drops_empty_lines(self) -> None:
        lines = TextNormalizer().normalize("  Hello   World  \n\n \t \n  Foo\tBar ")
        assert lines == ["Hello World", "Foo Bar"]

    def test_strips_non_printable(self) -> None:
        assert TextNormalizer().normalize("\x00abc\x07") == ["abc"]

    def test_keeps_accented_characters(self) -> None:
        assert TextNormalizer().normalize("Zoë Müller") == ["Zoë Müller"]

    def test_fixes_state_name(self) -> None:
        assert TextNormalizer().normalize("New Bouth Wales") == ["New South Wales"]

    def test_fixes_label_spacing(self) -> None:
        lines = TextNormalizer().normalize("DateofBirth 20 AUG 1976\nCardNumber 1234567")
        assert lines == ["Date of Birth 20 AUG 1976", "Card Number 1234567"]

    def test_fixes_fee_amount(self) -> None:
        assert TextNormalizer().normalize("Licence Fee S171 00") == [
            "Licence Fee $171.00"
        ]

    def test_fixes_letter_o_in_year(self) -> None:
        assert TextNormalizer().normalize("Issued 2O24") == ["Issued 2024"]

    def test_joins_hash_number(self) -> None:
        assert TextNormalizer().normalize("Invoice #  123") == ["Invoice #123"]

    def test_removes_pipes_and_braces(self) -> None:
        assert TextNormalizer().normalize("A | B {C}") == ["A B C"]

    def test_line_of_only_noise_characters_is_dropped(self) -> None:
        assert TextNormalizer().normalize("first\n| | }\nsecond") == ["first", "second"]

    def test_long_line_without_keywords_is_dropped(self) -> None:
        noise = "x" * 120
        assert TextNormalizer().normalize(f"{noise}\nkept") == ["kept"]

    def test_long_line_with_keyword_is_kept(self) -> None:
        line = "Name " + "x" * 120
        assert TextNormalizer().normalize(line) == [line]

    def test_empty_text(self) -> None:
        assert TextNormalizer().normalize("") == []

    def test_custom_corrections(self) -> None:
        normalizer = TextNormalizer(corrections=[])
        assert normalizer.normalize("New Bouth Wales") == ["New Bouth Wales"]


class TestLoadCorrections:
    """Tests for loading the correction table from YAML."""

    def test_missing_file_uses_defaults(self) -> None:
        corrections = load_corrections(Path("/nonexistent/corrections.yaml"))
        assert len(corrections) == len(DEFAULT_CORRECTIONS)

    def test_custom_file(self, tmp_path: Path) -> None:
        path = tmp_path / "corrections.yaml"
        with open(path, "w") as f:
            yaml.dump(
                {
                    "corrections": [
                        {"pattern": r"\bGvenice\b", "replacement": "C", "ignore_case": True},
                        {"pattern": "foo", "replacement": "bar"},
                    ]
                },
                f,
            )
        normalizer = TextNormalizer.from_file(path)
        assert normalizer.normalize("Class GVENICE\nfoo") == ["Class C", "bar"]

    def test_case_sensitive_by_default(self, tmp_path: Path) -> None:
        path = tmp_path / "corrections.yaml"
        path.write_text("corrections:\n  - pattern: foo\n    replacement: bar\n")
        assert TextNormalizer.from_file(path).normalize("FOO foo") == ["FOO bar"]

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "corrections.yaml"
        path.write_text("")
        assert len(load_corrections(path)) == len(DEFAULT_CORRECTIONS)

    def test_shipped_corrections_file(self, config_dir: Path) -> None:
        normalizer = TextNormalizer.from_file(config_dir / "corrections.yaml")
        assert normalizer.normalize("Bhupendragdiri\nG 4 3 0 7 1 6 9") == [
            "Bhupendra Giri",
            "G4 307 169",
        ]
