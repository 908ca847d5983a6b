import re
import sys
import requests
from collections import deque
from urllib.parse import urljoin, urldefrag, urlparse
from bs4 import BeautifulSoup

SKIP_PATTERNS = [r'^mailto:', r'^tel:', r'^javascript:', r'^data:', r'^#']
MAX_REPORTED = 200


class LinkChecker:
    def __init__(self, start_url, timeout=20, skip_patterns=None, max_pages=500):
        self.start_url = start_url
        self.host = urlparse(start_url).netloc
        self.timeout = timeout
        self.skip_patterns = [re.compile(p, re.IGNORECASE) for p in (skip_patterns or SKIP_PATTERNS)]
        self.max_pages = max_pages
        self.session = requests.Session()

    def should_skip(self, href):
        href = href.strip()
        return not href or any(p.search(href) for p in self.skip_patterns)

    def check_url(self, url):
        """
        Fetches one URL. Returns (ok, status_or_error, response).
        Anything >= 400 or a network failure counts as broken.
        """
        try:
            response = self.session.get(url, timeout=self.timeout)
            return response.status_code < 400, response.status_code, response
        except requests.exceptions.Timeout:
            return False, "timeout", None
        except requests.exceptions.RequestException as e:
            return False, f"{type(e).__name__}", None

    def extract_links(self, page_url, html):
        soup = BeautifulSoup(html, 'html.parser')
        links = []
        for tag in soup.find_all(['a', 'link', 'img', 'script', 'iframe', 'source']):
            href = tag.get('href') or tag.get('src')
            if not href or self.should_skip(href):
                continue
            links.append(urldefrag(urljoin(page_url, href.strip()))[0])
        return links

    def is_internal_page(self, url, response):
        if urlparse(url).netloc != self.host or response is None:
            return False
        return 'html' in response.headers.get('Content-Type', '').lower()

    def crawl(self, log_func=None):
        """
        Checks every link reachable from start_url, recursing only into pages
        on the same host. Returns (checked_count, broken) where broken is a
        list of {"url", "parent", "status"} dicts.
        """
        seen = {self.start_url: None}
        queue = deque([self.start_url])
        broken = []
        pages_crawled = 0

        while queue:
            url = queue.popleft()
            ok, status, response = self.check_url(url)
            if not ok:
                broken.append({"url": url, "parent": seen[url], "status": status})
                if log_func:
                    log_func(f"  [BROKEN] {url} ({status})")
                continue
            if not self.is_internal_page(url, response) or pages_crawled >= self.max_pages:
                continue

            pages_crawled += 1
            for link in self.extract_links(url, response.text):
                if link not in seen:
                    seen[link] = url
                    queue.append(link)

        return len(seen), broken


if __name__ == "__main__":
    import run_fixer
    io_handler = run_fixer.RepairIO()
    url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8080/index.html"
    checked, broken = LinkChecker(url).crawl(io_handler.log)
    if broken:
        io_handler.log("\nBroken links found:\n")
        for item in broken[:MAX_REPORTED]:
            io_handler.log(f"- {item['url']}  (from: {item['parent'] or 'unknown'})  status: {item['status']}")
        io_handler.log(f"\nTotal broken: {len(broken)}")
        sys.exit(1)
    io_handler.log(f"Link check passed. Checked: {checked} links")
