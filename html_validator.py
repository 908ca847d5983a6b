import os
import re
import sys
import json
import bisect
from collections import Counter
from bs4 import BeautifulSoup

import run_fixer
from markup_regions import RegionKind, VOID_TAGS, classify, is_self_closing

# --- Configuration ---
RULES_FILE = ".htmlhintrc"
# Same ids as HTMLHint's default rule set, so an existing .htmlhintrc keeps working
DEFAULT_RULES = {
    "tagname-lowercase": True,
    "attr-lowercase": True,
    "attr-value-double-quotes": True,
    "doctype-first": True,
    "tag-pair": True,
    "spec-char-escape": True,
    "id-unique": True,
    "src-not-empty": True,
    "attr-no-duplication": True,
    "title-require": True,
}

RAW_TAG_NAME_RE = re.compile(r'</?([A-Za-z][^\s/>]*)')
ATTR_RE = re.compile(r'''([^\s"'>/=]+)(?:\s*=\s*("[^"]*"|'[^']*'|[^\s"'=<>`]+))?''')
SRC_ATTRS = {"img": "src", "script": "src", "embed": "src", "iframe": "src", "frame": "src",
             "bgsound": "src", "link": "href", "object": "data"}


class LineIndex:
    """Maps a character offset to a 1-based (line, col)."""
    def __init__(self, text):
        self.starts = [0] + [m.end() for m in re.finditer(r'\n', text)]

    def position(self, offset):
        line = bisect.bisect_right(self.starts, offset)
        return line, offset - self.starts[line - 1] + 1


def issue(rule, message, line, col):
    return {"type": "error", "line": line, "col": col, "message": message, "rule": rule}


def parse_attributes(raw):
    """Returns [(name, raw_value_or_None)] for a start tag, in source order."""
    match = RAW_TAG_NAME_RE.match(raw)
    if not match:
        return []
    body = raw[match.end():]
    if body.endswith(">"):
        body = body[:-1]
    return [(m.group(1), m.group(2)) for m in ATTR_RE.finditer(body)]


def check_tokens(html, rules, lines):
    """Rules that need the raw source: tag and attribute spelling, pairing, bare < and >, doctype."""
    results = []
    stack = []
    seen_content = False

    for region in classify(html):
        line, col = lines.position(region.start)

        if region.kind == RegionKind.TEXT:
            if rules.get("spec-char-escape"):
                for m in re.finditer(r'[<>]', region.text):
                    l, c = lines.position(region.start + m.start())
                    results.append(issue("spec-char-escape", f"Special characters must be escaped : [ {m.group()} ].", l, c))
            if region.text.strip():
                seen_content = True
            continue

        if region.kind == RegionKind.COMMENT:
            continue
        if region.kind == RegionKind.DIRECTIVE:
            if region.text.lower().startswith("<!doctype"):
                seen_content = True
            continue
        if region.kind not in RegionKind.TAGS:
            continue

        if not seen_content and rules.get("doctype-first"):
            results.append(issue("doctype-first", "Doctype must be declared first.", line, col))
        seen_content = True

        raw_name = RAW_TAG_NAME_RE.match(region.text).group(1)
        name = raw_name.lower()
        if rules.get("tagname-lowercase") and raw_name != name:
            results.append(issue("tagname-lowercase", f"The html element name of [ {raw_name} ] must be in lowercase.", line, col))

        if region.kind == RegionKind.TAG_OPEN:
            attrs = parse_attributes(region.text)
            names = Counter(a.lower() for a, _ in attrs)
            for attr, value in attrs:
                if rules.get("attr-lowercase") and attr != attr.lower():
                    results.append(issue("attr-lowercase", f"The attribute name of [ {attr} ] must be in lowercase.", line, col))
                if rules.get("attr-value-double-quotes") and value is not None and not value.startswith('"'):
                    results.append(issue("attr-value-double-quotes", f"The value of attribute [ {attr} ] must be in double quotes.", line, col))
            if rules.get("attr-no-duplication"):
                for attr, count in names.items():
                    if count > 1:
                        results.append(issue("attr-no-duplication", f"Duplicate of attribute name [ {attr} ] was found.", line, col))
            if name not in VOID_TAGS and not is_self_closing(region.text) and region.terminated:
                stack.append((name, line, col))
            continue

        # Closing tag
        if not rules.get("tag-pair") or name in VOID_TAGS:
            continue
        idx = len(stack) - 1
        while idx >= 0 and stack[idx][0] != name:
            idx -= 1
        if idx < 0:
            results.append(issue("tag-pair", f"Tag must be paired, no start tag: [ </{name}> ]", line, col))
            continue
        for open_name, open_line, _ in reversed(stack[idx + 1:]):
            results.append(issue("tag-pair", f"Tag must be paired, missing: [ </{open_name}> ], start tag match failed [ <{open_name}> ] on line {open_line}.", line, col))
        del stack[idx:]

    if rules.get("tag-pair"):
        end_line, end_col = lines.position(len(html))
        for open_name, open_line, _ in reversed(stack):
            results.append(issue("tag-pair", f"Tag must be paired, missing: [ </{open_name}> ], start tag match failed [ <{open_name}> ] on line {open_line}.", end_line, end_col))
    return results


def check_dom(html, rules):
    """Rules that read better off the parsed tree: ids, empty src, title."""
    results = []
    soup = BeautifulSoup(html, 'html.parser')

    def where(tag):
        return tag.sourceline or 1, (tag.sourcepos or 0) + 1

    if rules.get("id-unique"):
        seen = set()
        for tag in soup.find_all(id=True):
            value = tag["id"]
            if value in seen:
                results.append(issue("id-unique", f"The id value [ {value} ] must be unique.", *where(tag)))
            seen.add(value)

    if rules.get("src-not-empty"):
        for name, attr in SRC_ATTRS.items():
            for tag in soup.find_all(name):
                if tag.has_attr(attr) and not tag[attr].strip():
                    results.append(issue("src-not-empty", f"The attribute [ {attr} ] of the tag [ {name} ] must have a value.", *where(tag)))

    if rules.get("title-require"):
        head = soup.find("head")
        title = head.find("title") if head else None
        if title is None:
            tag = head or soup.find("html")
            line, col = where(tag) if tag else (1, 1)
            results.append(issue("title-require", "<title></title> must be present in <head> tag.", line, col))
        elif not title.get_text(strip=True):
            results.append(issue("title-require", "<title></title> must not be empty.", *where(title)))
    return results


def validate_html(html, rules=None):
    """Lints one page. Returns issue dicts ordered by position."""
    if rules is None: rules = DEFAULT_RULES
    lines = LineIndex(html)
    results = check_tokens(html, rules, lines) + check_dom(html, rules)
    return sorted(results, key=lambda r: (r["line"], r["col"]))


def load_rules(root_dir, log_func=None):
    """
    Reads .htmlhintrc from root_dir ({"rule-id": true/false}).
    A rules file lists exactly the rules to run; no file (or {}) means the defaults.
    """
    path = os.path.join(root_dir, RULES_FILE)
    if not os.path.exists(path):
        return dict(DEFAULT_RULES)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("rules file must be a JSON object")
    except (OSError, ValueError) as e:
        if log_func:
            log_func(f"[Warning] Could not load {RULES_FILE}: {e}. Using defaults.")
        return dict(DEFAULT_RULES)
    if not data:
        return dict(DEFAULT_RULES)
    return {rule: bool(data.get(rule)) for rule in DEFAULT_RULES}


def validate_directory(root_dir, config=None, rules=None, log_func=None):
    """
    Lints every page under root_dir.
    Returns (error_count, files_checked, {relative_path: [issues]}).
    """
    if rules is None: rules = load_rules(root_dir, log_func)
    html_files = run_fixer.find_html_files(root_dir, config)
    error_count = 0
    results = {}

    for path in html_files:
        rel = os.path.relpath(path, root_dir).replace("\\", "/")
        ok, content = run_fixer.load_text(path)
        if not ok:
            issues = [issue("read", content, 1, 1)]
        else:
            issues = validate_html(content, rules)
        if not issues:
            continue
        results[rel] = issues
        error_count += sum(1 for i in issues if i["type"] == "error")
        if log_func:
            log_func(f"\n{rel}")
            for i in issues:
                log_func(f"  {i['type'].upper():<7} L{i['line']}:C{i['col']}  {i['message']}  ({i['rule']})")

    if log_func:
        if not html_files:
            log_func("No HTML files found.")
        elif error_count:
            log_func(f"\nHTML validation failed: {error_count} error(s).")
        else:
            log_func(f"\nHTML validation OK ({len(html_files)} file(s)).")
    return error_count, len(html_files), results


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else os.getcwd()
    errors, _, _ = validate_directory(target, log_func=run_fixer.RepairIO().log)
    sys.exit(1 if errors else 0)
