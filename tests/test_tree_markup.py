import unittest

from mdsync.services.markdown_tree import parse_to_tree
from mdsync.services.tree_html import render_tree_html
from mdsync.services.tree_markup import normalize_markup, tree_to_markup

SAMPLE = """# Project notes

Some **bold**, *italic*, ***both*** and ~~struck~~ text with `inline code`.

A [link](https://example.com "Example") and an image ![logo](https://example.com/logo.png).

- first
- second

3. three
4. four

> quoted text

```python
def hello():
    return "hi"
```

| Name | Value |
|------|-------|
| a | 1 |
| b |  |

---

Last line"""


class TestTreeToMarkup(unittest.TestCase):
    def test_table_round_trip_keeps_cells_and_separator(self):
        tree = parse_to_tree("| H1 | H2 |\n|---|---|\n| C1 | C2 |")
        html = render_tree_html(tree)
        self.assertIn("<th><p>H1</p></th>", html)
        markup = tree_to_markup(html)
        lines = markup.splitlines()
        self.assertEqual(lines[0], "| H1 | H2 |")
        self.assertEqual(lines[1], "| --- | --- |")
        self.assertEqual(lines[2], "| C1 | C2 |")

    def test_table_cell_formatting_is_flattened(self):
        markup = tree_to_markup("<table><tbody><tr><th><p><strong>Bold</strong> head</p></th></tr>"
                                "<tr><td><p>a | b</p></td></tr></tbody></table>")
        self.assertEqual(markup, "| Bold head |\n| --- |\n| a \\| b |")

    def test_merged_cells_emit_a_warning(self):
        warnings = []
        html = (
            "<table><tbody><tr><th colspan=\"2\"><p>Wide</p></th></tr>"
            "<tr><td><p>a</p></td><td><p>b</p></td></tr></tbody></table>"
        )
        markup = tree_to_markup(html, on_warning=warnings.append)
        self.assertEqual(len(warnings), 1)
        self.assertIn("colspan", warnings[0])
        self.assertIn("| Wide |  |", markup)

    def test_code_block_uses_fence_and_language(self):
        html = '<pre><code class="language-js">let a = 1;\n</code></pre>'
        self.assertEqual(tree_to_markup(html), "```js\nlet a = 1;\n```")

    def test_code_block_fence_outgrows_inner_backticks(self):
        html = "<pre><code>```\ninner\n```</code></pre>"
        self.assertEqual(tree_to_markup(html), "````\n```\ninner\n```\n````")

    def test_headings_are_atx(self):
        self.assertEqual(tree_to_markup("<h2>Title</h2>"), "## Title")

    def test_blank_line_runs_collapse(self):
        self.assertEqual(normalize_markup("Line 1\n\n\n\nLine 2"), "Line 1\n\nLine 2")

    def test_both_marks_survive(self):
        tree = parse_to_tree(normalize_markup("***text***"))
        node = tree["content"][0]["content"][0]
        self.assertEqual({mark["type"] for mark in node["marks"]}, {"bold", "italic"})

    def test_escaped_block_markers_stay_paragraphs(self):
        markup = normalize_markup("\\# x\n\n1\\. y")
        self.assertEqual(markup, "\\# x\n\n1\\. y")
        tree = parse_to_tree(markup)
        self.assertEqual([node["type"] for node in tree["content"]], ["paragraph", "paragraph"])

    def test_literal_markers_at_line_start_are_escaped(self):
        samples = ["\\- dash", "\\+ plus", "\\> quote", "2\\) close", "\\=== bar", "\\~~~ tilde"]
        for source in samples:
            with self.subTest(source=source):
                markup = normalize_markup(source)
                tree = parse_to_tree(markup)
                self.assertEqual([node["type"] for node in tree["content"]], ["paragraph"])
                self.assertEqual(parse_to_tree(markup), parse_to_tree(source))


class TestIdempotence(unittest.TestCase):
    def test_second_conversion_yields_the_same_tree(self):
        first = normalize_markup(SAMPLE)
        second = normalize_markup(first)
        self.assertEqual(parse_to_tree(second), parse_to_tree(first))

    def test_normalized_text_is_stable(self):
        first = normalize_markup(SAMPLE)
        self.assertEqual(normalize_markup(first), first)

    def test_normalization_keeps_the_text_content(self):
        original = parse_to_tree(SAMPLE)
        reparsed = parse_to_tree(normalize_markup(SAMPLE))
        self.assertEqual(len(reparsed["content"]), len(original["content"]))
        self.assertEqual(reparsed["content"][0], original["content"][0])


if __name__ == "__main__":
    unittest.main()
