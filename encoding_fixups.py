# Created by Meri Kasprak with the assistance of Gemini.
# Released freely under the GNU General Public License version 3. USE AT YOUR OWN RISK.

"""
Encoding fixups for pages that were saved as UTF-8, re-read as Windows-1252
and saved again. Each pair is (garbled sequence, intended character).
"""

# --- Configuration ---
# Order matters: "â€" is a prefix of most of the punctuation sequences, so
# every longer sequence has to be replaced before the bare prefix.
ENCODING_FIXUPS = [
    ("â€”", "—"),        # em dash
    ("â€“", "–"),        # en dash
    ("â€™", "’"),
    ("â€˜", "‘"),
    ("â€œ", "“"),
    ("â€¦", "…"),
    ("â€\u009d", "”"),   # 0x9D has no cp1252 glyph and survives as a C1 control
    ("â€\"", "—"),
    ("â€'", "’"),
    ("â€", "”"),         # bare prefix, always last of its family
    ("â‚¬", "€"),
    ("â†’", "→"),
    ("â†\u0090", "←"),
    ("â†", "←"),
    ("âˆ’", "−"),        # minus sign
    ("Â£", "£"),
    ("Â\u00a0", "\u00a0"),   # Â + no-break space
    ("Â ", " "),
]

# Only applies to tables with a replacement at least as long as its pattern;
# those could loop forever. A shrinking table always runs to a fixed point.
MAX_FIXUP_PASSES = 16


def check_fixup_order(fixups):
    """
    Returns a list of (earlier, later) pattern pairs where an earlier pattern
    would shadow a longer one listed after it.
    """
    problems = []
    for i, (earlier, _) in enumerate(fixups):
        for later, _ in fixups[i + 1:]:
            if later != earlier and later.startswith(earlier):
                problems.append((earlier, later))
    return problems


def apply_fixups_once(text, fixups=None):
    """One left-to-right pass of literal substitution. Returns (text, count)."""
    if fixups is None: fixups = ENCODING_FIXUPS
    count = 0
    for pattern, replacement in fixups:
        if not pattern or pattern not in text:
            continue
        count += text.count(pattern)
        text = text.replace(pattern, replacement)
    return text, count


def apply_encoding_fixups(text, fixups=None):
    """
    Replaces every known mis-decoded sequence with its intended character.
    Never fails; text without any garbled sequence is returned as-is.

    The table is re-applied until nothing changes, since a replacement can
    join with its neighbours into a new garbled sequence ("ÂÂ " -> "Â ").

    Returns: (fixed_text, substitution_count)
    """
    if fixups is None: fixups = ENCODING_FIXUPS
    shrinking = all(len(replacement) < len(pattern) for pattern, replacement in fixups if pattern)
    total = 0
    passes = 0
    while True:
        text, count = apply_fixups_once(text, fixups)
        if not count:
            break
        total += count
        passes += 1
        if not shrinking and passes >= MAX_FIXUP_PASSES:
            break
    return text, total
