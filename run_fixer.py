# Created by Meri Kasprak with the assistance of Gemini.
# Released freely under the GNU General Public License version 3. USE AT YOUR OWN RISK.

"""
HTML REPAIR PIPELINE:
1. Encoding fixups (mojibake punctuation -> real characters)
2. Tag balancing (tracked tags only, default <div>)
3. Text-node escaping (stray < and > in text -> &lt; / &gt;)

Works on plain strings in one forward pass per step; no DOM is built, so the
page comes back byte-for-byte identical apart from the repairs themselves.

Usage:
    python run_fixer.py site/                 # dry-run, writes site/repair-report.json
    python run_fixer.py site/ --write         # backs up each page once, then overwrites
    python run_fixer.py page.html --no-escape-text --track div --track section
"""

import os
import sys
import json
import shutil
import argparse
from datetime import datetime

import repair_reporter
from encoding_fixups import ENCODING_FIXUPS, apply_encoding_fixups
from markup_regions import VOID_TAGS
from tag_balancer import BALANCE_TAGS, balance_tags
from text_escaper import escape_text_nodes

# --- Configuration ---
BACKUP_SUFFIX = ".bak2"
SKIP_DIRS = ["node_modules", ".git", "dist"]
HTML_EXTENSION = ".html"
REPORT_NAME = "repair-report.json"
# Tool output that lands next to the pages but is not part of the site
GENERATED_FILES = [REPORT_NAME, repair_reporter.HTML_REPORT_NAME]


class RepairIO:
    """Handles progress output. Subclass this for GUI integration."""
    def __init__(self, quiet=False):
        self.quiet = quiet

    def log(self, message):
        try:
            print(message)
        except UnicodeEncodeError:
            # Fallback for Windows consoles that hate emojis and arrows
            print(message.encode('ascii', errors='replace').decode('ascii'))

    def detail(self, message):
        """Per-file line; hidden in quiet mode."""
        if not self.quiet:
            self.log(message)


def _check_string_list(data, key):
    # A bare string would otherwise be split into single characters
    value = data.get(key)
    if value is not None and (not isinstance(value, list) or not all(isinstance(v, str) for v in value)):
        raise ValueError(f"{key} must be a list of strings")


class RepairConfig:
    """Everything the repair passes need, injected instead of read from globals."""

    def __init__(self, trackable_tags=None, void_tags=None, fixups=None, escape_text=True,
                 backup_suffix=BACKUP_SUFFIX, skip_dirs=None, extension=HTML_EXTENSION):
        self.trackable_tags = frozenset(t.lower() for t in (BALANCE_TAGS if trackable_tags is None else trackable_tags))
        self.void_tags = frozenset(t.lower() for t in (VOID_TAGS if void_tags is None else void_tags))
        self.fixups = list(ENCODING_FIXUPS if fixups is None else fixups)
        self.escape_text = escape_text
        self.backup_suffix = backup_suffix
        self.skip_dirs = list(SKIP_DIRS if skip_dirs is None else skip_dirs)
        self.extension = extension.lower()

    @classmethod
    def from_dict(cls, data):
        """Builds a config from parsed JSON. Raises ValueError on a wrongly typed value."""
        for key in ("trackable_tags", "void_tags", "skip_dirs"):
            _check_string_list(data, key)
        fixups = data.get("fixups")
        if fixups is not None:
            if not isinstance(fixups, list):
                raise ValueError("fixups must be a list of [pattern, replacement] pairs")
            for pair in fixups:
                if (not isinstance(pair, (list, tuple)) or len(pair) != 2
                        or not all(isinstance(s, str) for s in pair)):
                    raise ValueError(f"bad fixup entry {pair!r}, expected [pattern, replacement]")
            fixups = [tuple(pair) for pair in fixups]
        if not isinstance(data.get("escape_text", True), bool):
            raise ValueError("escape_text must be true or false")
        for key in ("backup_suffix", "extension"):
            if key in data and not isinstance(data[key], str):
                raise ValueError(f"{key} must be a string")
        return cls(
            trackable_tags=data.get("trackable_tags"),
            void_tags=data.get("void_tags"),
            fixups=fixups,
            escape_text=data.get("escape_text", True),
            backup_suffix=data.get("backup_suffix", BACKUP_SUFFIX),
            skip_dirs=data.get("skip_dirs"),
            extension=data.get("extension", HTML_EXTENSION),
        )

    @classmethod
    def load(cls, path, io_handler=None):
        """Reads a JSON config file. Falls back to defaults if it can't be read."""
        if io_handler is None: io_handler = RepairIO()
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config must be a JSON object")
            return cls.from_dict(data)
        except (OSError, ValueError) as e:
            io_handler.log(f"[Warning] Could not load config {path}: {e}. Using defaults.")
            return cls()

    def to_dict(self):
        return {
            "trackable_tags": sorted(self.trackable_tags),
            "void_tags": sorted(self.void_tags),
            "fixups": [list(pair) for pair in self.fixups],
            "escape_text": self.escape_text,
            "backup_suffix": self.backup_suffix,
            "skip_dirs": list(self.skip_dirs),
            "extension": self.extension,
        }


def repair_html(html, config=None):
    """
    Runs the repair passes over one page held in memory.
    Pure function: no I/O, never raises for string input.

    Returns: (repaired_html, repairs) where repairs tallies
        fixups_applied, orphan_closes_dropped, closes_inserted, angles_escaped.
    """
    if config is None: config = RepairConfig()
    repairs = {"fixups_applied": 0, "orphan_closes_dropped": 0, "closes_inserted": 0, "angles_escaped": 0}

    text, count = apply_encoding_fixups(html, config.fixups)
    repairs["fixups_applied"] += count

    # Dropping an orphan close can join its neighbours into a new orphan or a
    # new garbled sequence. Every such round removes characters, so the text
    # settles within len(text) rounds.
    for _ in range(len(text) + 1):
        balanced, stats = balance_tags(text, config.trackable_tags, config.void_tags)
        if balanced == text:
            break
        repairs["orphan_closes_dropped"] += stats["orphan_closes_dropped"]
        repairs["closes_inserted"] += stats["closes_inserted"]
        text, count = apply_encoding_fixups(balanced, config.fixups)
        repairs["fixups_applied"] += count

    if config.escape_text:
        text, count = escape_text_nodes(text)
        repairs["angles_escaped"] += count

    return text, repairs


class ChangeRecord:
    """Outcome of repairing one document."""

    def __init__(self, file_path, original_text, repaired_text, repairs=None, error=None):
        self.file_path = file_path
        self.original_text = original_text
        self.repaired_text = repaired_text
        self.repairs = repairs or {}
        self.error = error
        self.written = False

    @property
    def changed(self):
        return self.repaired_text != self.original_text

    @property
    def structural_repairs(self):
        return self.repairs.get("orphan_closes_dropped", 0) + self.repairs.get("closes_inserted", 0)

    def to_dict(self, root_dir=None):
        path = self.file_path
        if root_dir:
            path = os.path.relpath(path, root_dir)
        entry = {"file": path.replace("\\", "/"), "changed": self.changed}
        if self.repairs:
            entry["repairs"] = dict(self.repairs)
        if self.written:
            entry["written"] = True
        if self.error:
            entry["error"] = self.error
        return entry


class RepairReport:
    """Run-level summary: one ChangeRecord per page plus totals."""

    def __init__(self, root_dir, write=False):
        self.root_dir = root_dir
        self.write = write
        self.timestamp = datetime.now().isoformat(timespec='seconds')
        self.records = []

    def add(self, record):
        self.records.append(record)

    @property
    def total_scanned(self):
        return len(self.records)

    @property
    def total_changed(self):
        return sum(1 for r in self.records if r.changed)

    @property
    def errors(self):
        return [r for r in self.records if r.error]

    def to_dict(self):
        return {
            "timestamp": self.timestamp,
            "write": self.write,
            "total_scanned": self.total_scanned,
            "total_changed": self.total_changed,
            "records": [r.to_dict(self.root_dir) for r in self.records],
            "errors": [r.to_dict(self.root_dir) for r in self.errors],
        }


# --- File Helpers ---
def load_text(filepath):
    """Returns (True, text) or (False, error_message)."""
    try:
        with open(filepath, 'r', encoding='utf-8', newline='') as f:
            return True, f.read()
    except (OSError, UnicodeDecodeError) as e:
        return False, f"Could not read {filepath}: {e}"


def save_text(filepath, content):
    """Writes UTF-8 without a BOM. Returns (success, message)."""
    try:
        with open(filepath, 'w', encoding='utf-8', newline='') as f:
            f.write(content)
        return True, f"Saved {os.path.basename(filepath)}"
    except OSError as e:
        return False, f"Could not save {filepath}: {e}"


def ensure_backup(filepath, suffix=BACKUP_SUFFIX):
    """
    Copies the original next to itself (page.html -> page.html.bak2) unless a
    backup already exists, so repeat runs never clobber the true original.
    Returns (success, backup_path_or_error).
    """
    backup_path = filepath + suffix
    if os.path.exists(backup_path):
        return True, backup_path
    try:
        shutil.copy2(filepath, backup_path)
        return True, backup_path
    except OSError as e:
        return False, f"Could not back up {filepath}: {e}"


def find_html_files(root_dir, config=None):
    """Recursively lists pages under root_dir, skipping tool folders, backups and our own reports."""
    if config is None: config = RepairConfig()
    generated = [g.lower() for g in GENERATED_FILES]
    html_files = []
    for root, dirs, files in os.walk(root_dir):
        # Modifying dirs in-place prunes the walk
        dirs[:] = [d for d in dirs if d not in config.skip_dirs]
        for file in files:
            name = file.lower()
            if name in generated:
                continue
            if config.backup_suffix and name.endswith(config.backup_suffix.lower()):
                continue
            if name.endswith(config.extension):
                html_files.append(os.path.join(root, file))
    return sorted(html_files)


def repair_file(filepath, config=None, write=False, io_handler=None):
    """
    Repairs one page on disk. In write mode the original is backed up first.
    Read/write failures come back as a ChangeRecord with .error set.
    """
    if config is None: config = RepairConfig()
    if io_handler is None: io_handler = RepairIO()
    name = os.path.basename(filepath)

    ok, content = load_text(filepath)
    if not ok:
        io_handler.log(f"  [ERROR] {content}")
        return ChangeRecord(filepath, None, None, error=content)

    repaired, repairs = repair_html(content, config)
    record = ChangeRecord(filepath, content, repaired, repairs)
    if not record.changed:
        io_handler.detail(f"  [OK] {name}")
        return record

    io_handler.detail(f"  [CHANGED] {name} ({describe_repairs(repairs)})")
    if write:
        ok, backup = ensure_backup(filepath, config.backup_suffix)
        if not ok:
            io_handler.log(f"  [ERROR] {backup}")
            record.error = backup
            return record
        ok, msg = save_text(filepath, repaired)
        if not ok:
            io_handler.log(f"  [ERROR] {msg}")
            record.error = msg
            return record
        record.written = True
        io_handler.detail(f"  [SAVED] {name} (backup: {os.path.basename(backup)})")
    return record


def describe_repairs(repairs):
    """Short human summary of a repairs tally."""
    labels = [
        ("fixups_applied", "encoding fixups"),
        ("closes_inserted", "closes inserted"),
        ("orphan_closes_dropped", "orphan closes dropped"),
        ("angles_escaped", "angles escaped"),
    ]
    parts = [f"{repairs[key]} {label}" for key, label in labels if repairs.get(key)]
    return ", ".join(parts) or "repaired"


def batch_repair(target_path, config=None, write=False, io_handler=None):
    """Repairs a single page or every page under a folder. Returns a RepairReport."""
    if config is None: config = RepairConfig()
    if io_handler is None: io_handler = RepairIO()

    if os.path.isdir(target_path):
        root_dir = target_path
        html_files = find_html_files(target_path, config)
    else:
        root_dir = os.path.dirname(target_path) or "."
        html_files = [target_path]

    report = RepairReport(root_dir, write=write)
    io_handler.log(f"[INFO] Scanning {len(html_files)} file(s) in {root_dir}")
    for filepath in html_files:
        report.add(repair_file(filepath, config, write, io_handler))

    mode = "(written)" if write else "(dry-run)"
    io_handler.log(f"repair-html: scanned {report.total_scanned} file(s), changed {report.total_changed} {mode}")
    if report.errors:
        io_handler.log(f"repair-html: {len(report.errors)} file(s) failed, see report")
    return report


def build_arg_parser():
    parser = argparse.ArgumentParser(description='Repair mojibake, unbalanced <div>s and stray angle brackets in HTML pages')
    parser.add_argument('target', nargs='?', default=os.getcwd(), help='Folder to scan or a single .html file')
    parser.add_argument('--write', action='store_true', help='Overwrite changed files (a backup is made first)')
    parser.add_argument('--no-escape-text', action='store_true', help='Leave < and > in text nodes alone')
    parser.add_argument('--track', action='append', metavar='TAG', help='Tag name to balance (repeatable, default: div)')
    parser.add_argument('--config', help='JSON config file')
    parser.add_argument('--report', help=f'Report path (default: <target>/{REPORT_NAME})')
    parser.add_argument('--html-report', action='store_true', help='Also write a readable HTML report')
    parser.add_argument('--check', action='store_true', help='Exit with status 1 if any file would change')
    parser.add_argument('--quiet', action='store_true', help='Only print the summary')
    return parser


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    io_handler = RepairIO(quiet=args.quiet)

    if not os.path.exists(args.target):
        io_handler.log(f"[ERROR] The path \"{args.target}\" does not exist.")
        return 1

    config = RepairConfig.load(args.config, io_handler) if args.config else RepairConfig()
    if args.track:
        config.trackable_tags = frozenset(t.lower() for t in args.track)
    if args.no_escape_text:
        config.escape_text = False

    report = batch_repair(args.target, config, write=args.write, io_handler=io_handler)

    report_path = args.report or os.path.join(report.root_dir, REPORT_NAME)
    ok, msg = repair_reporter.write_json_report(report.to_dict(), report_path)
    io_handler.log(f"repair-html: report -> {msg}" if ok else f"[ERROR] {msg}")
    if args.html_report:
        ok, msg = repair_reporter.generate_html_report(report.to_dict(), os.path.dirname(report_path) or ".")
        io_handler.log(f"repair-html: html report -> {msg}" if ok else f"[ERROR] {msg}")

    if report.errors:
        return 1
    if args.check and report.total_changed:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
