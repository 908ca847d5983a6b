import os
import re
import sys
import time
import subprocess

import run_fixer

# --- Configuration ---
# Groups: 1 = attribute and path, 2 = old ?v= (if any), 3 = closing quote
STAMP_PATTERNS = [
    re.compile(r'(href="icon\.png)(\?v=[^"]*)?(")'),
    re.compile(r'(href="apple-touch-icon[^"]*?\.png)(\?v=[^"]*)?(")'),
    re.compile(r'(href="assets/css/[^"]+?\.css)(\?v=[^"]*)?(")'),
    re.compile(r'(src="assets/js/[^"]+?\.js)(\?v=[^"]*)?(")'),
]


def current_version(repo_dir=None):
    """Short git commit hash, or a millisecond timestamp outside a git checkout."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=repo_dir, capture_output=True, text=True, check=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return str(int(time.time() * 1000))
    return result.stdout.strip() or str(int(time.time() * 1000))


def stamp(html, version):
    """Adds or refreshes ?v=<version> on local icon, css and js references."""
    for pattern in STAMP_PATTERNS:
        html = pattern.sub(lambda m: f"{m.group(1)}?v={version}{m.group(3)}", html)
    return html


def stamp_directory(root_dir, version=None, config=None, io_handler=None):
    """Stamps every page in place. Returns (changed, total)."""
    if io_handler is None: io_handler = run_fixer.RepairIO()
    if version is None: version = current_version(root_dir)
    html_files = run_fixer.find_html_files(root_dir, config)

    changed = 0
    for path in html_files:
        ok, original = run_fixer.load_text(path)
        if not ok:
            io_handler.log(f"  [ERROR] {original}")
            continue
        updated = stamp(original, version)
        if updated == original:
            continue
        ok, msg = run_fixer.save_text(path, updated)
        if not ok:
            io_handler.log(f"  [ERROR] {msg}")
            continue
        changed += 1

    io_handler.log(f"Version stamp applied (?v={version}) to {changed}/{len(html_files)} HTML file(s).")
    return changed, len(html_files)


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else os.getcwd()
    stamp_directory(target)
