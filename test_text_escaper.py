import unittest
from text_escaper import escape_text_nodes

class TestTextEscaper(unittest.TestCase):
    def test_text_node_less_than(self):
        out, count = escape_text_nodes("5 < 10 in <div>text</div>")
        self.assertEqual(out, "5 &lt; 10 in <div>text</div>")
        self.assertEqual(count, 1)

    def test_greater_than_in_text(self):
        out, count = escape_text_nodes("<p>a -> b >= c</p>")
        self.assertEqual(out, "<p>a -&gt; b &gt;= c</p>")
        self.assertEqual(count, 2)

    def test_stray_bracket_before_tag(self):
        out, _ = escape_text_nodes("<<b>bold</b>>")
        self.assertEqual(out, "&lt;<b>bold</b>&gt;")

    def test_protected_regions_untouched(self):
        html = (
            "<script>if (a < b && c > d) {}</script>"
            "<style>ul > li {}</style>"
            "<!-- a < b > c -->"
            "<!DOCTYPE html>"
        )
        out, count = escape_text_nodes(html)
        self.assertEqual(out, html)
        self.assertEqual(count, 0)

    def test_tag_markup_untouched(self):
        html = '<img src="a.png"/><a href="#x">link</a>'
        out, count = escape_text_nodes(html)
        self.assertEqual(out, html)
        self.assertEqual(count, 0)

    def test_existing_entities_kept(self):
        out, _ = escape_text_nodes("&lt;already&gt; &amp; fine")
        self.assertEqual(out, "&lt;already&gt; &amp; fine")

    def test_escaping_is_idempotent(self):
        once, _ = escape_text_nodes("x < y > z <p>1 < 2</p>")
        twice, count = escape_text_nodes(once)
        self.assertEqual(once, twice)
        self.assertEqual(count, 0)

if __name__ == "__main__":
    unittest.main()
