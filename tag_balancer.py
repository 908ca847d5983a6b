# Created by Meri Kasprak with the assistance of Gemini.
# Released freely under the GNU General Public License version 3. USE AT YOUR OWN RISK.

"""
Tag Balancer: a stack automaton over the tag regions of a page.

Only tag names in the trackable set are balanced; every other tag, and every
non-tag region, is copied through untouched.
"""

from markup_regions import VOID_TAGS, classify, parse_tag, unterminated_tail

# --- Configuration ---
# Widening this is possible, but "div" covers the breakage we actually see.
BALANCE_TAGS = frozenset(["div"])


class BalanceStack:
    """Open trackable tag names waiting for their close tag (LIFO)."""

    def __init__(self, trackable_tags):
        self.trackable_tags = frozenset(trackable_tags)
        self._names = []

    def __len__(self):
        return len(self._names)

    def push(self, name):
        if name not in self.trackable_tags:
            raise ValueError(f"'{name}' is not a tracked tag")
        self._names.append(name)

    def peek(self):
        return self._names[-1] if self._names else None

    def find(self, name):
        """Index of the most recently opened `name`, or -1."""
        for idx in range(len(self._names) - 1, -1, -1):
            if self._names[idx] == name:
                return idx
        return -1

    def close_through(self, idx):
        """
        Pops everything down to and including position idx.
        Returns the names that were opened after idx, most recent first.
        """
        inner = self._names[idx + 1:]
        del self._names[idx:]
        inner.reverse()
        return inner

    def drain(self):
        """Empties the stack, most recent first."""
        names = self._names[::-1]
        self._names = []
        return names


def closing_tag(name):
    return f"</{name}>"


def balance_tags(html, trackable_tags=None, void_tags=None):
    """
    Rewrites html so every trackable tag is opened and closed in a properly
    nested way.

    - A close tag with no matching open anywhere on the stack is dropped.
    - A close tag that matches an outer open first closes every tracked tag
      opened inside it (most recent first). This is a repair heuristic: it
      keeps the markup well-formed, it does not guess the author's intent.
    - Tags still open at the end are closed, most recent first.

    Returns: (balanced_html, stats) where stats counts
        orphan_closes_dropped and closes_inserted.
    """
    if trackable_tags is None: trackable_tags = BALANCE_TAGS
    if void_tags is None: void_tags = VOID_TAGS

    regions = classify(html)
    tail = unterminated_tail(regions)
    # Void elements never go on the stack, even if someone lists them as trackable
    stack = BalanceStack(name.lower() for name in trackable_tags if name.lower() not in void_tags)
    stats = {"orphan_closes_dropped": 0, "closes_inserted": 0}
    out = []

    for region in regions[:tail]:
        token = parse_tag(region, void_tags)
        if token is None or token.is_void or token.name not in stack.trackable_tags:
            out.append(region.text)
            continue

        if not token.is_closing:
            out.append(token.raw)
            if not token.is_self_closing:
                stack.push(token.name)
            continue

        if stack.peek() == token.name:
            stack.close_through(len(stack) - 1)
            out.append(token.raw)
            continue

        idx = stack.find(token.name)
        if idx == -1:
            # Orphan close: nothing to match, drop it
            stats["orphan_closes_dropped"] += 1
            continue

        for name in stack.close_through(idx):
            out.append(closing_tag(name))
            stats["closes_inserted"] += 1
        out.append(token.raw)

    for name in stack.drain():
        out.append(closing_tag(name))
        stats["closes_inserted"] += 1

    # Unterminated trailing markup goes last so it can't swallow the closes above
    out.extend(region.text for region in regions[tail:])
    return "".join(out), stats
