# Created by Meri Kasprak with the assistance of Gemini.
# Released freely under the GNU General Public License version 3. USE AT YOUR OWN RISK.

import os
import sys
import xml.etree.ElementTree as ET

import run_fixer

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
CHANGE_FREQ = "weekly"
PRIORITY = "0.7"


def page_urls(site_url, rel_paths):
    """Public URLs for each page, leaving out error pages (anything with '404' in its path)."""
    base = site_url.rstrip('/')
    urls = []
    for rel in rel_paths:
        rel = rel.replace("\\", "/").lstrip('/')
        if '404' in rel.lower():
            continue
        urls.append(f"{base}/{rel}")
    return urls


def build_sitemap(site_url, rel_paths):
    urlset = ET.Element("urlset", xmlns=SITEMAP_NS)
    for url in page_urls(site_url, rel_paths):
        entry = ET.SubElement(urlset, "url")
        ET.SubElement(entry, "loc").text = url
        ET.SubElement(entry, "changefreq").text = CHANGE_FREQ
        ET.SubElement(entry, "priority").text = PRIORITY
    ET.indent(urlset, space="  ")
    body = ET.tostring(urlset, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def build_robots(site_url):
    return f"User-agent: *\nAllow: /\n\nSitemap: {site_url.rstrip('/')}/sitemap.xml\n"


def write_sitemap(root_dir, site_url, config=None):
    """
    Writes sitemap.xml and robots.txt into root_dir.
    Returns (success, message).
    """
    html_files = run_fixer.find_html_files(root_dir, config)
    rel_paths = [os.path.relpath(p, root_dir) for p in html_files]
    sitemap = build_sitemap(site_url, rel_paths)
    count = sitemap.count("<loc>")

    for name, content in [("sitemap.xml", sitemap), ("robots.txt", build_robots(site_url))]:
        ok, msg = run_fixer.save_text(os.path.join(root_dir, name), content)
        if not ok:
            return False, msg
    return True, f"Generated sitemap.xml ({count} URLs) + robots.txt"


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python sitemap_utils.py <site folder> <public site url>")
        sys.exit(2)
    ok, msg = write_sitemap(sys.argv[1], sys.argv[2])
    print(msg)
    sys.exit(0 if ok else 1)
