# Created by Meri Kasprak with the assistance of Gemini.
# Released freely under the GNU General Public License version 3. USE AT YOUR OWN RISK.

"""
Markup Region Classifier.

Walks an HTML string once and cuts it into contiguous regions (text, tags,
comments, script/style bodies, directives). The regions always cover the
whole input, so "".join(r.text for r in regions) == html.

Both the tag balancer and the text escaper read this one region stream, so
they always agree on where a tag stops and text starts.
"""

import re
import bisect
from collections import namedtuple


class RegionKind:
    TEXT = "text"
    TAG_OPEN = "tag_open"
    TAG_CLOSE = "tag_close"
    COMMENT = "comment"
    SCRIPT_BODY = "script_body"
    STYLE_BODY = "style_body"
    DIRECTIVE = "directive"

    TAGS = (TAG_OPEN, TAG_CLOSE)
    # Never rewritten by the balancer or the escaper
    PROTECTED = (COMMENT, SCRIPT_BODY, STYLE_BODY, DIRECTIVE)


# --- Configuration ---
VOID_TAGS = frozenset([
    "area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta",
    "param", "source", "track", "wbr",
])

# Everything after these open tags is raw text up to the matching close tag
RAW_TEXT_TAGS = {
    "script": RegionKind.SCRIPT_BODY,
    "style": RegionKind.STYLE_BODY,
}

Region = namedtuple("Region", ["kind", "start", "end", "text", "terminated"])
TagToken = namedtuple("TagToken", ["name", "is_closing", "is_self_closing", "is_void", "raw"])

# "<" only opens markup when followed by one of these; "5 < 10" stays text.
MARKUP_START_RE = re.compile(r'<(?:(!--)|([!?])|(/?)[A-Za-z])')
TAG_NAME_RE = re.compile(r'</?([A-Za-z][^\s/>]*)')
SELF_CLOSING_RE = re.compile(r'/\s*>$')
RAW_TEXT_CLOSE_RES = {
    name: re.compile(rf'</{name}(?=[\s/>]|$)', re.IGNORECASE)
    for name in RAW_TEXT_TAGS
}


def markup_kind_at(html, pos):
    """Returns the RegionKind of markup starting at html[pos], or None if that "<" is plain text."""
    match = MARKUP_START_RE.match(html, pos)
    if not match:
        return None
    if match.group(1):
        return RegionKind.COMMENT
    if match.group(2):
        return RegionKind.DIRECTIVE
    return RegionKind.TAG_CLOSE if match.group(3) else RegionKind.TAG_OPEN


def tag_name(raw):
    """'<DIV class="x">' -> 'div'. Returns '' when raw is not a tag."""
    match = TAG_NAME_RE.match(raw)
    return match.group(1).lower() if match else ""


def is_self_closing(raw):
    return not raw.startswith("</") and bool(SELF_CLOSING_RE.search(raw))


def classify(html):
    """
    Splits html into a list of Regions in document order.

    Unterminated constructs (a tag with no ">", a comment with no "-->", a
    script with no "</script") run to the end of the input and are marked
    terminated=False. This never raises.

    A "<?" instruction runs to the next "?>" when there is one, otherwise to
    the first ">" like any other directive.
    """
    regions = []
    n = len(html)
    text_start = 0
    i = 0

    while i < n:
        lt = html.find("<", i)
        if lt == -1:
            break
        kind = markup_kind_at(html, lt)
        if kind is None:
            i = lt + 1
            continue

        if lt > text_start:
            regions.append(Region(RegionKind.TEXT, text_start, lt, html[text_start:lt], True))

        if kind == RegionKind.COMMENT:
            # "<!-->" is an (empty) comment too, so search from the dashes
            close = html.find("-->", lt + 2)
            end = n if close == -1 else close + 3
        elif html.startswith("<?", lt) and html.find("?>", lt + 2) != -1:
            # Processing instructions may hold a ">" of their own: <?php if ($a > 1) ?>
            close = html.find("?>", lt + 2)
            end = close + 2
        else:
            close = html.find(">", lt + 1)
            end = n if close == -1 else close + 1
        raw = html[lt:end]
        regions.append(Region(kind, lt, end, raw, close != -1))
        i = text_start = end

        if kind != RegionKind.TAG_OPEN or close == -1 or is_self_closing(raw):
            continue

        name = tag_name(raw)
        if name not in RAW_TEXT_TAGS:
            continue
        # Script/style body: skip straight to the close tag
        match = RAW_TEXT_CLOSE_RES[name].search(html, end)
        body_end = match.start() if match else n
        if body_end > end:
            regions.append(Region(RAW_TEXT_TAGS[name], end, body_end, html[end:body_end], match is not None))
        i = text_start = body_end

    if text_start < n:
        regions.append(Region(RegionKind.TEXT, text_start, n, html[text_start:], True))
    return regions


def parse_tag(region, void_tags=VOID_TAGS):
    """Builds a TagToken from a TAG_OPEN/TAG_CLOSE region; None for anything else."""
    if region.kind not in RegionKind.TAGS:
        return None
    raw = region.text
    name = tag_name(raw)
    closing = region.kind == RegionKind.TAG_CLOSE
    return TagToken(
        name=name,
        is_closing=closing,
        is_self_closing=not closing and region.terminated and is_self_closing(raw),
        is_void=name in void_tags,
        raw=raw,
    )


def region_at(regions, pos):
    """Returns the region covering character offset pos (None if out of range)."""
    if not regions or pos < 0 or pos >= regions[-1].end:
        return None
    starts = [r.start for r in regions]
    return regions[bisect.bisect_right(starts, pos) - 1]


def unterminated_tail(regions):
    """
    Index of the first region of a trailing unterminated construct, or
    len(regions) when the document ends cleanly.

    Anything appended after such a construct would be swallowed by it on the
    next read (e.g. a "</div>" after an unclosed "<script>" is script text),
    so generated markup has to go in front of it.
    """
    idx = len(regions)
    if idx and not regions[-1].terminated:
        idx -= 1
    if idx:
        prev = regions[idx - 1]
        if (prev.kind == RegionKind.TAG_OPEN and tag_name(prev.text) in RAW_TEXT_TAGS
                and not is_self_closing(prev.text)):
            # An open script/style tag with no close tag after it
            idx -= 1
    return idx


def render(regions):
    return "".join(r.text for r in regions)
