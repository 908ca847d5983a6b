import os
import json
import shutil
import tempfile
import unittest
from unittest.mock import patch

import run_fixer
import sitemap_utils
from run_fixer import RepairConfig, repair_html

EM_DASH_MOJIBAKE = "â€”"

class SilentIO(run_fixer.RepairIO):
    def __init__(self):
        super().__init__(quiet=False)
        self.lines = []

    def log(self, message):
        self.lines.append(message)

class TestRepairHtml(unittest.TestCase):
    def test_scenarios(self):
        cases = [
            ("<div><div>Text</div>", "<div><div>Text</div></div>"),
            ("<div></div></div>", "<div></div>"),
            (f"a {EM_DASH_MOJIBAKE} b", "a — b"),
            ("5 < 10 in <div>text</div>", "5 &lt; 10 in <div>text</div>"),
        ]
        for html, expected in cases:
            out, _ = repair_html(html)
            self.assertEqual(out, expected)

    def test_repairs_tally(self):
        out, repairs = repair_html(f"<div>{EM_DASH_MOJIBAKE} 1 < 2</div></div><div>")
        self.assertEqual(out, "<div>— 1 &lt; 2</div><div></div>")
        self.assertEqual(repairs, {
            "fixups_applied": 1,
            "orphan_closes_dropped": 1,
            "closes_inserted": 1,
            "angles_escaped": 1,
        })

    def test_escaping_can_be_disabled(self):
        out, repairs = repair_html("1 < 2", RepairConfig(escape_text=False))
        self.assertEqual(out, "1 < 2")
        self.assertEqual(repairs["angles_escaped"], 0)

    def test_custom_trackable_tags(self):
        config = RepairConfig(trackable_tags=["SECTION"])
        out, _ = repair_html("<section><div>", config)
        self.assertEqual(out, "<section><div></section>")

    def test_dropped_orphan_joining_sequences_is_settled(self):
        out, repairs = repair_html("Â</div> x")
        self.assertEqual(out, " x")
        self.assertEqual(repairs["orphan_closes_dropped"], 1)
        self.assertEqual(repairs["fixups_applied"], 1)

    def test_dropped_orphan_forming_new_tag_is_settled(self):
        config = RepairConfig(escape_text=False)
        out, _ = repair_html("a <</div>div>b", config)
        self.assertEqual(out, "a <div>b</div>")
        self.assertEqual(repair_html(out, config)[0], out)

    def test_chain_of_orphan_closes_settles(self):
        html = "<" * 6 + "</div>" + "/div>" * 6
        for config in (RepairConfig(), RepairConfig(escape_text=False)):
            out, repairs = repair_html(html, config)
            self.assertEqual(out, "")
            self.assertEqual(repairs["orphan_closes_dropped"], 7)
            self.assertEqual(repair_html(out, config)[0], out)

    def test_php_block_passes_through(self):
        html = "<?php if ($a > 1) echo 'x'; ?><div>ok</div>"
        self.assertEqual(repair_html(html)[0], html)

    def test_protected_content_is_byte_identical(self):
        html = "<div><script>if (a<b) { x = '</div>'; }</script><!-- 3 > 2 --><style>a>b{}</style>"
        out, _ = repair_html(html)
        self.assertIn("<script>if (a<b) { x = '</div>'; }</script>", out)
        self.assertIn("<!-- 3 > 2 -->", out)
        self.assertIn("<style>a>b{}</style>", out)

class TestConfig(unittest.TestCase):
    def test_defaults(self):
        config = RepairConfig()
        self.assertEqual(config.trackable_tags, frozenset(["div"]))
        self.assertIn("br", config.void_tags)
        self.assertTrue(config.escape_text)
        self.assertEqual(config.backup_suffix, ".bak2")

    def test_from_dict_round_trip(self):
        config = RepairConfig.from_dict({
            "trackable_tags": ["DIV", "Section"],
            "escape_text": False,
            "fixups": [["Ã©", "é"]],
        })
        self.assertEqual(config.trackable_tags, frozenset(["div", "section"]))
        self.assertFalse(config.escape_text)
        self.assertEqual(config.fixups, [("Ã©", "é")])
        self.assertEqual(RepairConfig.from_dict(config.to_dict()).to_dict(), config.to_dict())

    def test_from_dict_rejects_wrong_types(self):
        bad_configs = [
            {"trackable_tags": "div"},
            {"void_tags": ["br", 3]},
            {"skip_dirs": "node_modules"},
            {"fixups": [["only-pattern"]]},
            {"fixups": {"a": "b"}},
            {"fixups": [[1, "x"]]},
            {"escape_text": "no"},
            {"extension": 5},
        ]
        for data in bad_configs:
            with self.assertRaises(ValueError, msg=repr(data)):
                RepairConfig.from_dict(data)

    def test_load_wrongly_typed_file_falls_back(self):
        tmp = tempfile.mkdtemp()
        try:
            path = os.path.join(tmp, "config.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"trackable_tags": "section"}, f)
            io = SilentIO()
            config = RepairConfig.load(path, io)
            self.assertEqual(config.trackable_tags, frozenset(["div"]))
            self.assertTrue(any("trackable_tags must be a list" in line for line in io.lines))
        finally:
            shutil.rmtree(tmp)

    def test_load_bad_file_falls_back(self):
        tmp = tempfile.mkdtemp()
        try:
            path = os.path.join(tmp, "config.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{not json")
            io = SilentIO()
            config = RepairConfig.load(path, io)
            self.assertEqual(config.trackable_tags, frozenset(["div"]))
            self.assertTrue(any("[Warning]" in line for line in io.lines))
        finally:
            shutil.rmtree(tmp)

class TestFilePipeline(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.io = SilentIO()

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def write(self, rel, content):
        path = os.path.join(self.tmp, rel)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        return path

    def read(self, path):
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def test_find_html_files_skips_generated_reports(self):
        self.write("index.html", "")
        self.write("Repair_Report.html", "")
        self.write("sub/repair_report.HTML", "")
        self.write("repair-report.json", "{}")
        found = [os.path.relpath(p, self.tmp).replace("\\", "/") for p in run_fixer.find_html_files(self.tmp)]
        self.assertEqual(found, ["index.html"])

    def test_find_html_files_skips_tool_dirs_and_backups(self):
        self.write("index.html", "")
        self.write("docs/Page.HTML", "")
        self.write("docs/page.html.bak2", "")
        self.write("node_modules/pkg/readme.html", "")
        self.write(".git/x.html", "")
        self.write("notes.txt", "")
        found = [os.path.relpath(p, self.tmp).replace("\\", "/") for p in run_fixer.find_html_files(self.tmp)]
        self.assertEqual(found, ["docs/Page.HTML", "index.html"])

    def test_dry_run_leaves_files_alone(self):
        path = self.write("a.html", "<div>open")
        record = run_fixer.repair_file(path, write=False, io_handler=self.io)
        self.assertTrue(record.changed)
        self.assertEqual(record.repaired_text, "<div>open</div>")
        self.assertEqual(self.read(path), "<div>open")
        self.assertFalse(os.path.exists(path + ".bak2"))

    def test_write_creates_backup_once(self):
        path = self.write("a.html", "<div>open")
        record = run_fixer.repair_file(path, write=True, io_handler=self.io)
        self.assertTrue(record.written)
        self.assertEqual(self.read(path), "<div>open</div>")
        self.assertEqual(self.read(path + ".bak2"), "<div>open")

        # A second broken edit must not overwrite the true original
        with open(path, "w", encoding="utf-8") as f:
            f.write("<div>edited")
        run_fixer.repair_file(path, write=True, io_handler=self.io)
        self.assertEqual(self.read(path + ".bak2"), "<div>open")
        self.assertEqual(self.read(path), "<div>edited</div>")

    def test_unchanged_file_not_written(self):
        path = self.write("ok.html", "<div>fine</div>\r\n")
        record = run_fixer.repair_file(path, write=True, io_handler=self.io)
        self.assertFalse(record.changed)
        self.assertFalse(os.path.exists(path + ".bak2"))
        self.assertEqual(self.read(path), "<div>fine</div>\r\n")

    def test_line_endings_preserved(self):
        path = self.write("crlf.html", "<div>\r\nx\r\n")
        run_fixer.repair_file(path, write=True, io_handler=self.io)
        self.assertEqual(self.read(path), "<div>\r\nx\r\n</div>")

    def test_unreadable_file_does_not_stop_batch(self):
        self.write("good.html", "<div>")
        bad = os.path.join(self.tmp, "bad.html")
        with open(bad, "wb") as f:
            f.write(b"\xff\xfe\xfa not utf-8")
        report = run_fixer.batch_repair(self.tmp, write=True, io_handler=self.io)
        self.assertEqual(report.total_scanned, 2)
        self.assertEqual(report.total_changed, 1)
        self.assertEqual(len(report.errors), 1)
        self.assertEqual(self.read(os.path.join(self.tmp, "good.html")), "<div></div>")
        self.assertTrue(any("[ERROR]" in line for line in self.io.lines))

    def test_write_failure_is_recorded(self):
        path = self.write("a.html", "<div>")
        with patch("run_fixer.save_text", return_value=(False, "disk full")):
            record = run_fixer.repair_file(path, write=True, io_handler=self.io)
        self.assertEqual(record.error, "disk full")
        self.assertFalse(record.written)

    def test_report_dict(self):
        self.write("sub/a.html", "<div>")
        self.write("b.html", "<p>ok</p>")
        report = run_fixer.batch_repair(self.tmp, io_handler=self.io)
        data = report.to_dict()
        self.assertEqual(data["total_scanned"], 2)
        self.assertEqual(data["total_changed"], 1)
        self.assertFalse(data["write"])
        self.assertIn("timestamp", data)
        files = {r["file"]: r for r in data["records"]}
        self.assertTrue(files["sub/a.html"]["changed"])
        self.assertEqual(files["sub/a.html"]["repairs"]["closes_inserted"], 1)
        self.assertFalse(files["b.html"]["changed"])
        self.assertNotIn("original_text", json.dumps(data))

    def test_single_file_target(self):
        path = self.write("one.html", "<div>")
        report = run_fixer.batch_repair(path, io_handler=self.io)
        self.assertEqual(report.total_scanned, 1)
        self.assertEqual(report.to_dict()["records"][0]["file"], "one.html")

class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.page = os.path.join(self.tmp, "index.html")
        with open(self.page, "w", encoding="utf-8") as f:
            f.write("<div>1 < 2")

    def tearDown(self):
        shutil.rmtree(self.tmp)

    @patch("builtins.print")
    def test_dry_run_writes_report(self, mock_print):
        code = run_fixer.main([self.tmp])
        self.assertEqual(code, 0)
        with open(os.path.join(self.tmp, "repair-report.json"), encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data["total_changed"], 1)
        with open(self.page, encoding="utf-8") as f:
            self.assertEqual(f.read(), "<div>1 < 2")

    @patch("builtins.print")
    def test_check_mode_fails_when_changes_needed(self, mock_print):
        self.assertEqual(run_fixer.main([self.tmp, "--check", "--quiet"]), 1)

    @patch("builtins.print")
    def test_write_with_options(self, mock_print):
        report = os.path.join(self.tmp, "out", "report.json")
        code = run_fixer.main([self.tmp, "--write", "--no-escape-text", "--report", report, "--html-report"])
        self.assertEqual(code, 0)
        with open(self.page, encoding="utf-8") as f:
            self.assertEqual(f.read(), "<div>1 < 2</div>")
        self.assertTrue(os.path.exists(report))
        self.assertTrue(os.path.exists(os.path.join(self.tmp, "out", "Repair_Report.html")))
        self.assertEqual(run_fixer.main([self.tmp, "--check", "--no-escape-text"]), 0)

    @patch("builtins.print")
    def test_reports_in_site_folder_are_not_pages(self, mock_print):
        run_fixer.main([self.tmp, "--html-report"])
        self.assertTrue(os.path.exists(os.path.join(self.tmp, "Repair_Report.html")))
        self.assertEqual(run_fixer.find_html_files(self.tmp), [self.page])

        report = run_fixer.batch_repair(self.tmp, io_handler=SilentIO())
        self.assertEqual(report.total_scanned, 1)
        ok, msg = sitemap_utils.write_sitemap(self.tmp, "https://example.com")
        self.assertEqual(msg, "Generated sitemap.xml (1 URLs) + robots.txt")
        with open(os.path.join(self.tmp, "sitemap.xml"), encoding="utf-8") as f:
            self.assertNotIn("Repair_Report", f.read())

    @patch("builtins.print")
    def test_missing_target(self, mock_print):
        self.assertEqual(run_fixer.main([os.path.join(self.tmp, "nope")]), 1)

if __name__ == "__main__":
    unittest.main()
