import unittest

from mdsync.services.document_tree import has_mark, iter_nodes, tree_text
from mdsync.services.markdown_tree import parse_to_tree


def blocks(markup):
    return parse_to_tree(markup)["content"]


class TestInlineMarks(unittest.TestCase):
    def test_strong_emphasis_yields_one_text_node_with_both_marks(self):
        para = blocks("***text***")[0]
        self.assertEqual(len(para["content"]), 1)
        node = para["content"][0]
        self.assertEqual(node["text"], "text")
        self.assertEqual({mark["type"] for mark in node["marks"]}, {"bold", "italic"})

    def test_nested_spans_flatten_onto_text_runs(self):
        para = blocks("**bold *both* bold**")[0]
        texts = [(node["text"], {mark["type"] for mark in node.get("marks", [])}) for node in para["content"]]
        self.assertEqual(
            texts,
            [("bold ", {"bold"}), ("both", {"bold", "italic"}), (" bold", {"bold"})],
        )

    def test_strike_and_code(self):
        para = blocks("~~gone~~ and `code`")[0]
        self.assertTrue(has_mark(para["content"][0], "strike"))
        self.assertTrue(has_mark(para["content"][-1], "code"))

    def test_link_mark_carries_href_and_title(self):
        para = blocks('[site](https://example.com "Home")')[0]
        node = para["content"][0]
        self.assertEqual(node["text"], "site")
        self.assertEqual(node["marks"], [{"type": "link", "attrs": {"href": "https://example.com", "title": "Home"}}])

    def test_unsafe_link_degrades_to_plain_text(self):
        para = blocks("[file](ftp://example.com/file)")[0]
        self.assertEqual(para["content"], [{"type": "text", "text": "file"}])

    def test_script_link_never_becomes_a_link(self):
        tree = parse_to_tree("[x](javascript:alert(1))")
        self.assertFalse(any(has_mark(node, "link") for node in iter_nodes(tree)))

    def test_unsafe_image_is_omitted(self):
        para = blocks("![pic](ftp://example.com/a.png)")[0]
        self.assertEqual(para, {"type": "paragraph"})

    def test_image_attributes(self):
        para = blocks('![A cat](https://example.com/cat.png "Cat")')[0]
        self.assertEqual(
            para["content"],
            [{"type": "image", "attrs": {"src": "https://example.com/cat.png", "alt": "A cat", "title": "Cat"}}],
        )

    def test_single_newline_is_a_hard_break(self):
        para = blocks("one\ntwo")[0]
        self.assertEqual([node["type"] for node in para["content"]], ["text", "hardBreak", "text"])


class TestBlocks(unittest.TestCase):
    def test_blank_line_runs_do_not_create_empty_paragraphs(self):
        content = blocks("Line 1\n\n\n\n\nLine 2")
        self.assertEqual(
            content,
            [
                {"type": "paragraph", "content": [{"type": "text", "text": "Line 1"}]},
                {"type": "paragraph", "content": [{"type": "text", "text": "Line 2"}]},
            ],
        )

    def test_empty_heading_omits_content(self):
        heading = blocks("#")[0]
        self.assertEqual(heading, {"type": "heading", "attrs": {"level": 1}})

    def test_heading_levels(self):
        levels = [node["attrs"]["level"] for node in blocks("# a\n\n### c\n\n###### f")]
        self.assertEqual(levels, [1, 3, 6])

    def test_unterminated_fence_closes_at_end_of_input(self):
        node = blocks("```python\ncode line\nmore")[0]
        self.assertEqual(
            node,
            {"type": "codeBlock", "attrs": {"language": "python"}, "content": [{"type": "text", "text": "code line\nmore"}]},
        )

    def test_empty_code_block_has_no_text_node(self):
        node = blocks("```\n```")[0]
        self.assertEqual(node, {"type": "codeBlock"})

    def test_lists(self):
        bullet, ordered = blocks("- one\n- two\n\n3. three\n4. four")
        self.assertEqual(bullet["type"], "bulletList")
        self.assertEqual([tree_text(item) for item in bullet["content"]], ["one", "two"])
        self.assertEqual(ordered["type"], "orderedList")
        self.assertEqual(ordered["attrs"], {"start": 3})

    def test_blockquote_and_rule(self):
        quote, rule = blocks("> quoted\n\n---")
        self.assertEqual(quote["type"], "blockquote")
        self.assertEqual(tree_text(quote), "quoted")
        self.assertEqual(rule, {"type": "horizontalRule"})

    def test_empty_input(self):
        self.assertEqual(parse_to_tree(""), {"type": "doc", "content": []})

    def test_text_content_matches_source_without_block_punctuation(self):
        markup = "# Title\n\nSome **bold** and *italic* text.\n\n- one\n- two\n\n> quote"
        self.assertEqual(tree_text(parse_to_tree(markup)), "TitleSome bold and italic text.onetwoquote")

    def test_no_empty_text_nodes(self):
        tree = parse_to_tree("# \n\n**\n\n| a |\n|---|\n|  |\n\n``` \n```")
        for node in iter_nodes(tree):
            if node.get("type") == "text":
                self.assertTrue(node["text"])


class TestTables(unittest.TestCase):
    def test_header_row_and_cells(self):
        table = blocks("| H1 | H2 |\n|---|---|\n| C1 | C2 |")[0]
        self.assertEqual(table["type"], "table")
        rows = table["content"]
        self.assertEqual(len(rows), 2)
        self.assertEqual([cell["type"] for cell in rows[0]["content"]], ["tableHeader", "tableHeader"])
        self.assertEqual([cell["type"] for cell in rows[1]["content"]], ["tableCell", "tableCell"])
        self.assertEqual([tree_text(cell) for cell in rows[1]["content"]], ["C1", "C2"])

    def test_every_cell_holds_exactly_one_paragraph(self):
        table = blocks("| A | B |\n|---|---|\n|  | x |")[0]
        for row in table["content"]:
            for cell in row["content"]:
                self.assertEqual(len(cell["content"]), 1)
                self.assertEqual(cell["content"][0]["type"], "paragraph")
        empty_cell = table["content"][1]["content"][0]
        self.assertEqual(empty_cell["content"], [{"type": "paragraph"}])


if __name__ == "__main__":
    unittest.main()
