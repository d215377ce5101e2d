import unittest

from cpuprofile_md.analyzer import analyze
from cpuprofile_md.converter import convert
from cpuprofile_md.formatter import format_result
from cpuprofile_md.formatter.utils import (
    anchor_id,
    escape_markdown,
    format_duration,
    format_location,
    format_percent,
    format_time,
    table_separator,
    truncate
)
from cpuprofile_md.models import AnalyzeOptions, ConvertOptions, FormatOptions
from cpuprofile_md.parser import normalize

from profile_fixtures import app_profile, chain_profile


class TestUtils(unittest.TestCase):
    def test_format_duration(self):
        self.assertEqual(format_duration(500), "500µs")
        self.assertEqual(format_duration(1500), "1.50ms")
        self.assertEqual(format_duration(2_500_000), "2.50s")
        self.assertEqual(format_duration(90_000_000), "1m 30.00s")

    def test_format_time(self):
        self.assertEqual(format_time(999), "999µs")
        self.assertEqual(format_time(12_346), "12.35ms")
        self.assertEqual(format_time(3_000_000), "3.000s")

    def test_format_location(self):
        self.assertEqual(format_location("file:///app/index.js", 9), "index.js:10")
        self.assertEqual(format_location("", 0), "(unknown):1")

    def test_escape_markdown(self):
        self.assertEqual(escape_markdown("a|b_c*[d]`"), "a\\|b\\_c\\*\\[d\\]\\`")

    def test_misc(self):
        self.assertEqual(format_percent(12.3456), "12.35%")
        self.assertEqual(format_percent(12.3456, 1), "12.3%")
        self.assertEqual(anchor_id("hotspot-1-(garbage collector)"), "hotspot-1-garbage-collector")
        self.assertEqual(table_separator(3, ["right", "left"]), "| ---: | :--- | --- |")
        self.assertEqual(truncate("abcdefgh", 6), "abc...")
        self.assertEqual(truncate("abc", 6), "abc")


class TestFormats(unittest.TestCase):
    def setUp(self):
        self.result = analyze(normalize(app_profile()))

    def test_summary(self):
        markdown = format_result(self.result, "summary", FormatOptions(profile_name="app.cpuprofile"))
        self.assertIn("# app.cpuprofile - Performance Summary", markdown)
        self.assertIn("## Top Hotspots", markdown)
        self.assertIn("| Rank | Function |", markdown)
        self.assertIn("## Critical Paths", markdown)
        self.assertIn("**Primary bottleneck**: `compute`", markdown)
        self.assertIn("**Application code focus**", markdown)
        self.assertIn("**GC pressure detected**", markdown)

    def test_detailed(self):
        markdown = format_result(self.result, "detailed")
        self.assertIn("Detailed Analysis", markdown)
        self.assertIn("## Call Tree", markdown)
        self.assertIn("Text-based flame graph", markdown)
        self.assertIn("◀ HOTSPOT", markdown)
        self.assertIn("└── ", markdown)
        self.assertIn("**Called by**:", markdown)
        self.assertIn("## All Functions", markdown)

    def test_detailed_tree_overflow(self):
        data = {
            "nodes": [{"id": 1, "callFrame": {"functionName": "(root)"}, "children": list(range(2, 14))}]
            + [{"id": i, "callFrame": {"functionName": f"f{i}", "url": "/f.js"}} for i in range(2, 14)],
            "samples": list(range(2, 14)),
            "timeDeltas": [1] * 12
        }
        markdown = format_result(analyze(normalize(data)), "detailed")
        self.assertIn("*(2 more children...)*", markdown)

    def test_detailed_deep_tree(self):
        markdown = format_result(analyze(normalize(chain_profile(1500))), "detailed")
        self.assertIn("fn1500", markdown)

    def test_adaptive(self):
        markdown = format_result(self.result, "adaptive")
        self.assertIn("Performance Analysis", markdown)
        self.assertIn("## Executive Summary", markdown)
        self.assertIn("**Secondary bottleneck**: `helper`", markdown)
        self.assertIn("**Optimization potential**: High", markdown)
        self.assertIn("[→ Details](#hotspot-1-compute)", markdown)
        self.assertIn('<a id="hotspot-1-compute"></a>', markdown)
        self.assertIn("*Called by*:", markdown)
        self.assertIn("This is a native/built-in function.", markdown)

    def test_no_hotspots(self):
        result = analyze(normalize(app_profile()), AnalyzeOptions(hotspot_threshold=101.0))
        self.assertIn(
            "No significant performance hotspots detected in this profile.",
            format_result(result, "adaptive")
        )
        self.assertIn(
            "No significant hotspots detected (all functions below threshold).",
            format_result(result, "summary")
        )

    def test_unknown_level(self):
        with self.assertRaises(ValueError):
            format_result(self.result, "verbose")


class TestConvert(unittest.TestCase):
    def test_default_is_adaptive(self):
        markdown = convert(app_profile())
        self.assertIn("# CPU Profile - Performance Analysis", markdown)

    def test_levels_and_limits(self):
        options = ConvertOptions(level="summary", analyze=AnalyzeOptions(max_hotspots=1, max_paths=1))
        markdown = convert(app_profile(), options)
        self.assertIn("| 1 | compute |", markdown)
        self.assertNotIn("| 2 |", markdown)
        self.assertIn("### Path 1", markdown)
        self.assertNotIn("### Path 2", markdown)


if __name__ == "__main__":
    unittest.main()
