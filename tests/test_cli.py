"""
Tests for the admx-csv command line.
"""

import csv
import json
import logging

from admx_csv.cli import build_argument_parser, main
from admx_csv.rows import COLUMNS


class TestArgumentParser:
    """Tests for argument parsing."""

    def test_unset_options_are_none(self):
        args = build_argument_parser().parse_args([])

        assert args.definitions is None
        assert args.hive is None
        assert args.use_culture is None

    def test_repeatable_options(self):
        args = build_argument_parser().parse_args(
            ["--vendor", "windows=a.adml", "--vendor", "products=b.adml", "-i", "x", "-i", "y", "--class", "User"]
        )

        assert args.vendors == ["windows=a.adml", "products=b.adml"]
        assert args.ignored_admx == ["x", "y"]
        assert args.class_filter == ["User"]


class TestMain:
    """End-to-end tests over the sample PolicyDefinitions tree."""

    def test_csv_report(self, definitions_dir, tmp_path, capsys):
        output = tmp_path / "report.csv"

        exit_code = main(["-d", str(definitions_dir), "-o", str(output)])

        assert exit_code == 0
        with output.open(encoding="utf-8-sig", newline="") as handle:
            parsed = list(csv.reader(handle))
        assert parsed[0] == list(COLUMNS)
        assert len(parsed) == 11
        assert parsed[1][2] == "SimpleToggle"
        assert parsed[1][6] == "At least Windows 7"
        stdout = capsys.readouterr().out
        assert f"Wrote 10 rows (2 policies) to {output}" in stdout
        assert "By Class: Machine: 1, User: 1" in stdout
        assert "Skipped policies: 1" in stdout

    def test_json_report_with_filters(self, definitions_dir, tmp_path):
        output = tmp_path / "report.json"

        exit_code = main(
            ["-d", str(definitions_dir), "-o", str(output), "--format", "json", "--class", "Machine", "--hive"]
        )

        assert exit_code == 0
        payload = json.loads(output.read_text(encoding="utf-8-sig"))
        assert [record["Policy Name"] for record in payload] == ["SimpleToggle"]
        assert payload[0]["Registry Key"] == "HKLM\\Software\\Policies\\Contoso\\App"

    def test_config_file(self, definitions_dir, tmp_path):
        output = tmp_path / "report.csv"
        config = tmp_path / "admx-csv.yaml"
        config.write_text(
            f"definitions: '{definitions_dir}'\n" f"output: '{output}'\n" "delimiter: ';'\n" "policy: settings\n",
            encoding="utf-8",
        )

        exit_code = main(["--config", str(config)])

        assert exit_code == 0
        with output.open(encoding="utf-8-sig", newline="") as handle:
            parsed = list(csv.reader(handle, delimiter=";"))
        assert {row[2] for row in parsed[1:]} == {"Settings"}

    def test_vendor_override(self, definitions_dir, tmp_path):
        output = tmp_path / "report.csv"
        other = tmp_path / "Other.adml"
        other.write_text(
            "<policyDefinitionResources><resources><stringTable>"
            '<string id="SUPPORTED_Windows7">Windows 7 and newer</string>'
            "</stringTable></resources></policyDefinitionResources>",
            encoding="utf-8",
        )

        main(["-d", str(definitions_dir), "-o", str(output), "--vendor", f"Windows={other}"])

        with output.open(encoding="utf-8-sig", newline="") as handle:
            parsed = list(csv.reader(handle))
        assert parsed[1][6] == "Windows 7 and newer"

    def test_missing_definitions(self, tmp_path, caplog):
        exit_code = main(["-d", str(tmp_path / "missing"), "-o", str(tmp_path / "out.csv")])

        assert exit_code == 2
        assert "was not found" in caplog.text
        assert not (tmp_path / "out.csv").exists()

    def test_bad_config(self, tmp_path):
        config = tmp_path / "bad.yaml"
        config.write_text("colour: blue\n", encoding="utf-8")

        assert main(["--config", str(config)]) == 2

    def test_unknown_encoding(self, definitions_dir, tmp_path, caplog):
        output = tmp_path / "report.csv"

        exit_code = main(["-d", str(definitions_dir), "-o", str(output), "--encoding", "bogus-enc"])

        assert exit_code == 2
        assert "Unknown encoding 'bogus-enc'" in caplog.text
        assert not output.exists()

    def test_unknown_encoding_in_config(self, definitions_dir, tmp_path):
        config = tmp_path / "admx-csv.yaml"
        config.write_text(f"definitions: '{definitions_dir}'\nencoding: bogus-enc\n", encoding="utf-8")

        assert main(["--config", str(config), "-o", str(tmp_path / "report.csv")]) == 2

    def test_encoding_that_cannot_hold_the_report(self, definitions_dir, tmp_path, caplog):
        adml = definitions_dir / "en-US" / "Contoso.adml"
        adml.write_text(adml.read_text(encoding="utf-8").replace("Contoso App", "Contoso Äpp"), encoding="utf-8")
        output = tmp_path / "report.csv"

        exit_code = main(["-d", str(definitions_dir), "-o", str(output), "--encoding", "ascii"])

        assert exit_code == 2
        assert "cannot represent" in caplog.text
        assert not output.exists()

    def test_total_is_logged(self, definitions_dir, tmp_path, caplog):
        caplog.set_level(logging.INFO, logger="admx_csv")

        main(["-d", str(definitions_dir), "-o", str(tmp_path / "report.csv")])

        assert "Contoso.admx: 2 policies, 10 rows" in caplog.text
        assert "Total: 10 rows, 2 policies, 1 skipped" in caplog.text
