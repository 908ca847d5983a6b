# Created by Meri Kasprak with the assistance of Gemini.
# Released freely under the GNU General Public License version 3. USE AT YOUR OWN RISK.

"""
SHARED NAVBAR:
Builds one canonical <nav> from the site's root-level pages, saves it to
partials/nav.html and copies it into every page.

A page gets the block between <!-- NAV:START --> and <!-- NAV:END --> replaced.
Pages without the markers get their first <nav>...</nav> replaced instead.
`verify_nav` is the CI side: every page must be enrolled and carry the
canonical block.

Usage:
    python nav_sync.py site/            # regenerate and sync
    python nav_sync.py site/ --verify   # exit 1 if any page is out of date
"""

import os
import sys
import argparse
from bs4 import BeautifulSoup

import run_fixer
from markup_regions import RegionKind, classify, tag_name

# --- Configuration ---
NAV_START = "<!-- NAV:START -->"
NAV_END = "<!-- NAV:END -->"
NAV_SYNC_MARKER = "<!-- NAV_SYNC: nav_sync.py -->"
PARTIAL_PATH = os.path.join("partials", "nav.html")
HOME_PAGE = "index.html"
HOME_LABEL = "Home"
NAV_CLASS = "bg-blue-600 text-white py-4 no-print"


def label_from_filename(filename, prefix=""):
    """'easy-site-inspection.html' -> 'Site&nbsp;Inspection' (with prefix='easy-')."""
    base = os.path.splitext(filename)[0]
    if base.lower() == "index":
        return HOME_LABEL
    if prefix and base.lower().startswith(prefix.lower()):
        base = base[len(prefix):]
    words = [w[:1].upper() + w[1:] for w in base.replace("_", "-").split("-") if w]
    return "&nbsp;".join(words) or base


def nav_links(root_dir, prefix=""):
    """
    Links for the navbar, taken from root-level pages only so nested docs
    never end up in it. Home comes first, the rest alphabetically.
    Returns a list of (href, label).
    """
    pages = []
    for name in os.listdir(root_dir):
        lower = name.lower()
        if not lower.endswith(run_fixer.HTML_EXTENSION) or not os.path.isfile(os.path.join(root_dir, name)):
            continue
        if lower == HOME_PAGE or lower in [g.lower() for g in run_fixer.GENERATED_FILES] or "404" in lower:
            continue
        if prefix and not lower.startswith(prefix.lower()):
            continue
        pages.append(name)

    links = [(HOME_PAGE, HOME_LABEL)]
    links += [(name, label_from_filename(name, prefix)) for name in sorted(pages, key=str.lower)]
    return links


def build_nav_template(links):
    lines = []
    for href, label in links:
        if href.lower() == HOME_PAGE:
            lines.append(f'    <a data-safe-link href="{href}" class="font-black text-xl mr-4">{label}</a>')
        else:
            lines.append(f'    <a data-safe-link href="{href}" class="hover:underline">{label}</a>')
    link_html = "\n".join(lines)
    return (
        f"{NAV_START}\n"
        f'<nav class="{NAV_CLASS}">\n'
        f'  <div class="container mx-auto px-4 flex flex-wrap items-center gap-4">\n'
        f"{link_html}\n"
        f"  </div>\n"
        f"</nav>\n"
        f"{NAV_END}\n"
    )


def extract_nav_block(html):
    """Text from NAV:START through NAV:END inclusive, or None."""
    start = html.find(NAV_START)
    end = html.find(NAV_END, start + len(NAV_START)) if start != -1 else -1
    if start == -1 or end == -1:
        return None
    return html[start:end + len(NAV_END)]


def replace_between_markers(html, template):
    block = extract_nav_block(html)
    if block is None:
        return None
    start = html.find(NAV_START)
    after = html[start + len(block):]
    # The template carries its own newline after NAV_END
    if after.startswith("\r\n"):
        after = after[2:]
    elif after.startswith("\n"):
        after = after[1:]
    return html[:start] + template + after


def replace_first_nav(html, template):
    """
    Swaps the first real <nav>...</nav> (not one inside a comment or script)
    for the template without its markers. Returns None if the page has none.
    """
    start = end = None
    for region in classify(html):
        if region.kind not in RegionKind.TAGS or tag_name(region.text) != "nav":
            continue
        if start is None and region.kind == RegionKind.TAG_OPEN:
            start = region.start
        elif start is not None and region.kind == RegionKind.TAG_CLOSE:
            end = region.end
            break
    if start is None or end is None:
        return None
    bare = template.replace(NAV_START + "\n", "").replace(NAV_END + "\n", "").strip()
    return html[:start] + bare + html[end:]


def normalize(text):
    return text.replace("\r\n", "\n").strip()


def _partial_file(root_dir):
    return os.path.join(root_dir, PARTIAL_PATH)


def _site_pages(root_dir, config):
    partial = os.path.abspath(_partial_file(root_dir))
    return [p for p in run_fixer.find_html_files(root_dir, config) if os.path.abspath(p) != partial]


def sync_nav(root_dir, prefix="", config=None, write=True, io_handler=None):
    """
    Regenerates partials/nav.html and syncs it into every page.
    Returns (changed, skipped) where skipped counts pages with no nav at all.
    """
    if io_handler is None: io_handler = run_fixer.RepairIO()
    template = build_nav_template(nav_links(root_dir, prefix))

    partial = _partial_file(root_dir)
    if write:
        os.makedirs(os.path.dirname(partial), exist_ok=True)
        ok, msg = run_fixer.save_text(partial, template)
        if not ok:
            io_handler.log(f"[ERROR] {msg}")
            return 0, 0

    changed = skipped = 0
    for path in _site_pages(root_dir, config):
        rel = os.path.relpath(path, root_dir).replace("\\", "/")
        ok, original = run_fixer.load_text(path)
        if not ok:
            io_handler.log(f"  [ERROR] {original}")
            continue

        updated = replace_between_markers(original, template)
        if updated is None:
            updated = replace_first_nav(original, template)
        if updated is None:
            skipped += 1
            io_handler.detail(f"  [SKIP] {rel} (no nav)")
            continue
        if updated == original:
            continue

        changed += 1
        if write:
            ok, msg = run_fixer.save_text(path, updated)
            if not ok:
                io_handler.log(f"  [ERROR] {msg}")
                continue
        io_handler.detail(f"  [UPDATED] {rel}")

    io_handler.log(f"Nav sync: changed {changed}, skipped {skipped}")
    return changed, skipped


def verify_nav(root_dir, config=None):
    """
    Checks every page against partials/nav.html.
    Returns a list of {"file", "issue"} dicts (empty when everything matches).
    """
    partial = _partial_file(root_dir)
    ok, canonical = run_fixer.load_text(partial)
    if not ok:
        return [{"file": PARTIAL_PATH.replace("\\", "/"), "issue": "Missing canonical nav, run nav_sync.py first."}]

    failures = []
    soup = BeautifulSoup(canonical, 'html.parser')
    for a in soup.find_all('a', href=True):
        href = a['href'].split('#')[0]
        if href and not os.path.exists(os.path.join(root_dir, href)):
            failures.append({"file": PARTIAL_PATH.replace("\\", "/"), "issue": f"Nav links to missing page {href}."})

    canonical = normalize(canonical)
    for path in _site_pages(root_dir, config):
        rel = os.path.relpath(path, root_dir).replace("\\", "/")
        ok, html = run_fixer.load_text(path)
        if not ok:
            failures.append({"file": rel, "issue": html})
            continue
        if NAV_SYNC_MARKER not in html:
            failures.append({"file": rel, "issue": "Missing NAV_SYNC marker (page not enrolled)."})
            continue
        block = extract_nav_block(html)
        if block is None:
            failures.append({"file": rel, "issue": "Missing NAV markers (NAV:START/NAV:END)."})
            continue
        if normalize(block) != canonical:
            failures.append({"file": rel, "issue": "Nav block differs from partials/nav.html."})
    return failures


def main(argv=None):
    parser = argparse.ArgumentParser(description='Generate the shared navbar and sync it into every page')
    parser.add_argument('target', nargs='?', default=os.getcwd(), help='Site folder')
    parser.add_argument('--prefix', default='', help='Only root pages starting with this prefix go in the nav')
    parser.add_argument('--verify', action='store_true', help='Check pages instead of rewriting them')
    args = parser.parse_args(argv)
    io_handler = run_fixer.RepairIO()

    if not os.path.isdir(args.target):
        io_handler.log(f"[ERROR] The folder \"{args.target}\" does not exist.")
        return 1

    if args.verify:
        failures = verify_nav(args.target)
        if failures:
            io_handler.log("\nNAV VERIFICATION FAILED\n")
            for item in failures:
                io_handler.log(f"- {item['file']}: {item['issue']}")
            io_handler.log("\nFix: run \"python nav_sync.py\" and commit the changes.")
            return 1
        io_handler.log("NAV VERIFICATION PASSED: every page is enrolled and matches the canonical nav.")
        return 0

    sync_nav(args.target, prefix=args.prefix, io_handler=io_handler)
    return 0


if __name__ == "__main__":
    sys.exit(main())
