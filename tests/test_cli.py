import gzip
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from typer.testing import CliRunner

from cpuprofile_md.cli import app

from profile_fixtures import app_profile


class TestCli(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.profile_path = self.dir / "app.cpuprofile"
        self.profile_path.write_text(json.dumps(app_profile()), encoding="utf-8")

    def tearDown(self):
        self.tmp.cleanup()

    def test_convert_to_stdout(self):
        result = self.runner.invoke(app, ["convert", str(self.profile_path), "-f", "summary"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Performance Summary", result.stdout)
        self.assertIn("| Rank | Function |", result.stdout)

    def test_convert_to_file(self):
        out = self.dir / "analysis.md"
        result = self.runner.invoke(
            app,
            ["convert", str(self.profile_path), "--output", str(out), "--max-hotspots", "2"]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        markdown = out.read_text(encoding="utf-8")
        self.assertIn("## Executive Summary", markdown)
        self.assertIn("[→ Details](#hotspot-2-helper)", markdown)
        self.assertNotIn("hotspot-3-", markdown)

    def test_convert_gzipped_input(self):
        gz_path = self.dir / "app.cpuprofile.gz"
        gz_path.write_bytes(gzip.compress(json.dumps(app_profile()).encode("utf-8")))
        result = self.runner.invoke(app, ["convert", str(gz_path), "-f", "detailed"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("## Call Tree", result.stdout)

    def test_convert_with_source(self):
        source_dir = self.dir / "src"
        source_dir.mkdir()
        (source_dir / "compute.js").write_text("\n".join(f"line {n}" for n in range(1, 30)), encoding="utf-8")
        result = self.runner.invoke(
            app,
            ["convert", str(self.profile_path), "--source-dir", str(source_dir), "--include-source"]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("**Source Code**:", result.stdout)
        self.assertIn("  13 | line 13 // ← HOT", result.stdout)

    def test_invalid_format(self):
        result = self.runner.invoke(app, ["convert", str(self.profile_path), "-f", "verbose"])
        self.assertEqual(result.exit_code, 1)

    def test_missing_file(self):
        result = self.runner.invoke(app, ["convert", str(self.dir / "missing.cpuprofile")])
        self.assertEqual(result.exit_code, 1)

    def test_unreadable_file(self):
        for command in ["convert", "analyze"]:
            with self.subTest(command=command):
                with mock.patch.object(Path, "read_bytes", side_effect=PermissionError("Permission denied")):
                    result = self.runner.invoke(app, [command, str(self.profile_path)])
                self.assertEqual(result.exit_code, 1)
                self.assertNotIsInstance(result.exception, PermissionError)
                self.assertIn("Could not read profile", result.output)

    def test_invalid_json(self):
        bad = self.dir / "bad.cpuprofile"
        bad.write_text("invalid json", encoding="utf-8")
        result = self.runner.invoke(app, ["convert", str(bad)])
        self.assertEqual(result.exit_code, 1)

    def test_stdin_input(self):
        result = self.runner.invoke(app, ["convert", "-", "-f", "summary"], input=json.dumps(app_profile()))
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("# CPU Profile - Performance Summary", result.stdout)

    def test_analyze_writes_json(self):
        out = self.dir / "analysis.json"
        result = self.runner.invoke(app, ["analyze", str(self.profile_path), "--out", str(out)])
        self.assertEqual(result.exit_code, 0, result.output)
        data = json.loads(out.read_text(encoding="utf-8"))
        self.assertEqual(data["total_time"], 80)
        self.assertEqual(data["total_samples"], 80)
        self.assertEqual(data["hotspots"][0]["name"], "compute")
        self.assertEqual(data["call_tree"]["name"], "(root)")
        self.assertEqual(len(data["critical_paths"]), 3)

    def test_analyze_missing_samples(self):
        data = app_profile()
        del data["samples"]
        bad = self.dir / "nosamples.cpuprofile"
        bad.write_text(json.dumps(data), encoding="utf-8")
        result = self.runner.invoke(app, ["analyze", str(bad), "--out", str(self.dir / "out.json")])
        self.assertEqual(result.exit_code, 1)
        self.assertFalse((self.dir / "out.json").exists())


if __name__ == "__main__":
    unittest.main()
