import os
import sys
from bs4 import BeautifulSoup, Doctype

import run_fixer

# --- Configuration ---
MIN_TITLE_LENGTH = 4
MIN_DESCRIPTION_LENGTH = 30


def has_rel(link, value):
    """bs4 parses rel as a list ("shortcut icon" -> ['shortcut', 'icon'])."""
    rel = link.get('rel') or []
    if isinstance(rel, str):
        rel = rel.split()
    return value in [r.lower() for r in rel]


def find_meta(soup, attr, value):
    for meta in soup.find_all('meta'):
        if meta.get(attr, '').strip().lower() == value:
            return meta
    return None


def check_html(html):
    """Returns a list of SEO issues for one page (empty when it passes)."""
    soup = BeautifulSoup(html, 'html.parser')
    issues = []

    # Basic doc structure
    # html.parser keeps "doctype html" as-is but strips an upper-case "DOCTYPE "
    doctypes = [str(item).strip().lower() for item in soup.contents if isinstance(item, Doctype)]
    doctypes = [d[len('doctype'):].strip() if d.startswith('doctype') else d for d in doctypes]
    if not any(d.startswith('html') for d in doctypes):
        issues.append("Missing <!DOCTYPE html>")
    html_tag = soup.find('html')
    if not html_tag or not html_tag.get('lang', '').strip():
        issues.append('Missing <html lang="...">')
    charset = soup.find('meta', attrs={'charset': True})
    if not charset:
        content_type = find_meta(soup, 'http-equiv', 'content-type')
        if not content_type or 'charset=' not in content_type.get('content', '').lower():
            issues.append("Missing charset meta")
    if not find_meta(soup, 'name', 'viewport'):
        issues.append("Missing viewport meta")

    # Title + meta description
    title = soup.find('title')
    if not title or len(title.get_text(strip=True)) < MIN_TITLE_LENGTH:
        issues.append("Missing or too-short <title>")
    description = find_meta(soup, 'name', 'description')
    if not description or len(description.get('content', '').strip()) < MIN_DESCRIPTION_LENGTH:
        issues.append(f"Missing or too-short meta description (min ~{MIN_DESCRIPTION_LENGTH} chars)")

    # One H1
    h1_count = len(soup.find_all('h1'))
    if h1_count == 0:
        issues.append("Missing <h1>")
    elif h1_count > 1:
        issues.append(f"Multiple <h1> tags found ({h1_count})")

    links = soup.find_all('link')
    if not any(has_rel(link, 'canonical') for link in links):
        issues.append("Missing canonical link (recommended)")

    # OpenGraph
    if not find_meta(soup, 'property', 'og:title'):
        issues.append("Missing og:title (recommended)")
    if not find_meta(soup, 'property', 'og:description'):
        issues.append("Missing og:description (recommended)")

    if not any(has_rel(link, 'icon') for link in links):
        issues.append("Missing favicon link")

    return issues


def scan_file(filepath):
    ok, content = run_fixer.load_text(filepath)
    if not ok:
        return [content]
    return check_html(content)


def scan_directory(root_dir, config=None, log_func=None):
    """
    Checks every page under root_dir.
    Returns {relative_path: [issues]} for the pages that fail.
    """
    results = {}
    html_files = run_fixer.find_html_files(root_dir, config)
    for path in html_files:
        issues = scan_file(path)
        if issues:
            rel_path = os.path.relpath(path, root_dir).replace("\\", "/")
            results[rel_path] = issues
            if log_func:
                log_func(f"\n[SEO] {rel_path}")
                for issue in issues:
                    log_func(f"  - {issue}")
    if log_func:
        if results:
            log_func(f"\nSEO validation failed: {len(results)} of {len(html_files)} file(s).")
        else:
            log_func(f"SEO validation passed ({len(html_files)} files)")
    return results


if __name__ == "__main__":
    if len(sys.argv) > 1:
        target = sys.argv[1]
    else:
        target = os.getcwd()
    failures = scan_directory(target, log_func=run_fixer.RepairIO().log)
    sys.exit(1 if failures else 0)
