"""Tests for the Markdown block parser."""

from __future__ import annotations

from md2docx.parser import (
    BlockKind,
    BlockquoteBlock,
    CodeBlock,
    DiagramBlock,
    Dialect,
    HeadingBlock,
    ImageBlock,
    ListBlock,
    MarkdownParser,
    ParagraphBlock,
    RuleBlock,
    TableBlock,
    parse_blocks,
    split_table_row,
)


def _parse(md: str):
    return MarkdownParser().parse(md)


class TestHeadings:

    def test_levels(self):
        blocks = _parse("# One\n## Two\n###### Six")
        assert blocks == [
            HeadingBlock(level=1, text="One"),
            HeadingBlock(level=2, text="Two"),
            HeadingBlock(level=6, text="Six"),
        ]

    def test_seven_hashes_is_paragraph(self):
        blocks = _parse("####### Not a heading\nnext line")
        assert blocks == [ParagraphBlock(text="####### Not a heading next line")]

    def test_requires_space(self):
        assert _parse("#tag") == [ParagraphBlock(text="#tag")]


class TestParagraphs:

    def test_plain_lines_join_with_spaces(self):
        lines = ["just some words", "more words here", "and a last line"]
        assert _parse("\n".join(lines)) == [ParagraphBlock(text=" ".join(lines))]

    def test_blank_line_splits(self):
        blocks = _parse("first\n\n\nsecond")
        assert blocks == [ParagraphBlock(text="first"), ParagraphBlock(text="second")]

    def test_stops_at_heading(self):
        blocks = _parse("text\n# Title")
        assert blocks == [ParagraphBlock(text="text"), HeadingBlock(level=1, text="Title")]

    def test_stops_at_list(self):
        blocks = _parse("text\n- item")
        assert blocks[0] == ParagraphBlock(text="text")
        assert isinstance(blocks[1], ListBlock)

    def test_line_cap(self):
        blocks = _parse("\n".join(["word"] * 1500))
        assert len(blocks) == 2
        assert blocks[0].text.count("word") == 1000
        assert blocks[1].text.count("word") == 500

    def test_crlf_normalized(self):
        assert _parse("a\r\nb") == [ParagraphBlock(text="a b")]

    def test_empty_input(self):
        assert _parse("") == []
        assert _parse("\n\n  \n") == []


class TestRules:

    def test_variants(self):
        blocks = _parse("---\n***\n____")
        assert blocks == [RuleBlock(), RuleBlock(), RuleBlock()]

    def test_mixed_is_not_rule(self):
        assert _parse("-*-") == [ParagraphBlock(text="-*-")]


class TestFences:

    def test_code_keeps_language(self):
        blocks = _parse("```Python\nprint(1)\n\nprint(2)\n```")
        assert blocks == [CodeBlock(text="print(1)\n\nprint(2)", language="python")]

    def test_mermaid(self):
        blocks = _parse("```mermaid\ngraph TD; A-->B;\n```")
        assert blocks == [DiagramBlock(dialect=Dialect.MERMAID, source="graph TD; A-->B;")]

    def test_plantuml_by_language(self):
        for tag in ("plantuml", "uml"):
            blocks = _parse(f"```{tag}\nAlice -> Bob\n```")
            assert blocks == [DiagramBlock(dialect=Dialect.PLANTUML, source="Alice -> Bob")]

    def test_plantuml_by_content(self):
        blocks = _parse("```text\n@startuml\nA -> B\n@enduml\n```")
        assert blocks == [
            DiagramBlock(dialect=Dialect.PLANTUML, source="@startuml\nA -> B\n@enduml")
        ]

    def test_unterminated_runs_to_end(self):
        blocks = _parse("```js\nlet a = 1;\n# not a heading")
        assert blocks == [CodeBlock(text="let a = 1;\n# not a heading", language="js")]

    def test_content_is_verbatim(self):
        blocks = _parse("```\n  | a | b |\n  | --- | --- |\n```\nafter")
        assert blocks[0] == CodeBlock(text="  | a | b |\n  | --- | --- |")
        assert blocks[1] == ParagraphBlock(text="after")


class TestBlockquotes:

    def test_strips_one_marker_and_space(self):
        blocks = _parse(">  indented\n>plain\n> > nested")
        assert blocks == [BlockquoteBlock(text=" indented\nplain\n> nested")]


class TestLists:

    def test_unordered(self):
        blocks = _parse("- a\n* b\n+ c")
        assert blocks == [ListBlock(items=("a", "b", "c"), ordered=False)]

    def test_ordered(self):
        blocks = _parse("1. one\n2. two\n10. ten")
        assert blocks == [ListBlock(items=("one", "two", "ten"), ordered=True)]

    def test_class_change_splits(self):
        blocks = _parse("- a\n1. b")
        assert blocks == [
            ListBlock(items=("a",), ordered=False),
            ListBlock(items=("b",), ordered=True),
        ]


class TestTables:

    def test_basic_table(self):
        md = (
            "| Name | Score |\n"
            "| ---- | ----: |\n"
            "| Alice | 10 |\n"
            "| Bob | 20 |"
        )
        blocks = _parse(md)
        assert blocks == [TableBlock(rows=(
            ("Name", "Score"),
            ("Alice", "10"),
            ("Bob", "20"),
        ))]

    def test_ends_at_line_without_pipe(self):
        blocks = _parse("a | b\n--- | ---\n1 | 2\ntext after")
        assert blocks == [
            TableBlock(rows=(("a", "b"), ("1", "2"))),
            ParagraphBlock(text="text after"),
        ]

    def test_separator_must_follow_header(self):
        blocks = _parse("| a | b |\n\n| --- | --- |")
        assert all(block.kind is not BlockKind.TABLE for block in blocks)

    def test_short_dash_run_is_not_separator(self):
        blocks = _parse("| a | b |\n| -- | -- |")
        assert blocks == [ParagraphBlock(text="| a | b | | -- | -- |")]

    def test_split_row(self):
        assert split_table_row("| a |  b | c |") == ("a", "b", "c")
        assert split_table_row("a|b") == ("a", "b")


class TestImages:

    def test_image_line(self):
        blocks = _parse("![A chart](img/chart.png)")
        assert blocks == [ImageBlock(alt_text="A chart", target="img/chart.png")]

    def test_empty_alt(self):
        assert _parse("![](x.png)") == [ImageBlock(alt_text="", target="x.png")]

    def test_image_anywhere_in_line(self):
        blocks = _parse("See ![x](a.png) here")
        assert blocks == [ImageBlock(alt_text="x", target="a.png")]

    def test_image_line_ends_paragraph(self):
        blocks = _parse("intro text\n![Chart](c.png)\nafter")
        assert blocks == [
            ParagraphBlock(text="intro text"),
            ImageBlock(alt_text="Chart", target="c.png"),
            ParagraphBlock(text="after"),
        ]

    def test_mid_paragraph_image_stays_text(self):
        blocks = _parse("first line\nthen ![x](x.png) inline")
        assert blocks == [ParagraphBlock(text="first line then ![x](x.png) inline")]


class TestDocumentOrder:

    def test_sample_sequence(self):
        md = "# T\n\nintro\n\n- a\n\n```mermaid\ngraph LR; X-->Y;\n```\n\n---"
        kinds = [block.kind for block in parse_blocks(md)]
        assert kinds == [
            BlockKind.HEADING,
            BlockKind.PARAGRAPH,
            BlockKind.LIST,
            BlockKind.DIAGRAM,
            BlockKind.RULE,
        ]
