# Created by Meri Kasprak with the assistance of Gemini.
# Released freely under the GNU General Public License version 3. USE AT YOUR OWN RISK.

from markup_regions import RegionKind, classify

TEXT_ENTITIES = {"<": "&lt;", ">": "&gt;"}


def escape_text_nodes(html):
    """
    Escapes raw < and > that sit in text nodes. Tags, comments, directives
    and script/style bodies are copied through as-is.

    Returns: (escaped_html, escaped_count)
    """
    out = []
    count = 0
    for region in classify(html):
        if region.kind != RegionKind.TEXT:
            out.append(region.text)
            continue
        text = region.text
        found = text.count("<") + text.count(">")
        if found:
            text = text.replace("<", TEXT_ENTITIES["<"]).replace(">", TEXT_ENTITIES[">"])
            count += found
        out.append(text)
    return "".join(out), count
