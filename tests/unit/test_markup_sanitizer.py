"""Unit tests for the table cell sanitizer."""

import pytest
from lxml.html import Element, HtmlElement, tostring

from depot_ingest.ingestion.markup_sanitizer import _unwrap_single_block, sanitize_markup


class TestPlainText:
    """Cells without markup."""

    def test_plain_text_is_trimmed(self):
        assert sanitize_markup("  Captain  ") == "Captain"

    def test_plain_text_is_not_escaped(self):
        """Quotes and digits in stat cells pass through untouched."""
        assert sanitize_markup('6"') == '6"'

    def test_empty_cell(self):
        assert sanitize_markup("") == ""

    def test_ampersand_is_escaped(self):
        assert sanitize_markup("Tooth & Claw") == "Tooth &amp; Claw"


class TestRemoval:
    """Elements that are dropped with everything inside them."""

    def test_combined_cleanup(self):
        """Empty paragraph, ability name marker and anchor in one cell."""
        value = '<p>&nbsp;</p><div class="abName">X</div><a href="#">Link</a>'

        assert sanitize_markup(value) == "Link"

    @pytest.mark.parametrize("tag", ["script", "iframe", "object"])
    def test_blocked_tags_are_removed(self, tag):
        value = f"Before<{tag}>payload</{tag}> after"

        result = sanitize_markup(value)

        assert "payload" not in result
        assert f"<{tag}" not in result
        assert result == "Before after"

    def test_ability_name_class_among_others(self):
        value = '<div class="abName dsLeft">Oath of Moment</div><p>Re-roll hits.</p>'

        assert sanitize_markup(value) == "<p>Re-roll hits.</p>"

    def test_comments_are_removed(self):
        assert sanitize_markup("<p>Kept<!-- internal note --></p>") == "<p>Kept</p>"

    def test_paragraph_with_only_line_break_is_removed(self):
        assert sanitize_markup("<p><br></p><p>Text</p>") == "<p>Text</p>"


class TestUnwrapping:
    """Elements replaced by their content."""

    def test_anchor_keeps_text_and_surroundings(self):
        value = 'See <a href="/rules/core#Deep-Strike">Deep Strike</a> rules.'

        assert sanitize_markup(value) == "See Deep Strike rules."

    def test_italics_are_unwrapped(self):
        assert sanitize_markup("<p>Some <i>italic</i> text</p>") == "<p>Some italic text</p>"

    def test_nested_unwrap_keeps_inner_markup(self):
        value = '<a href="#"><span class="kwb">INFANTRY</span> units</a>'

        assert sanitize_markup(value) == '<span class="kwb">INFANTRY</span> units'

    def test_block_wrapped_in_paragraph_is_unwrapped(self):
        value = "<p><table><tr><td>1</td></tr></table></p>"

        result = sanitize_markup(value)

        assert "<p>" not in result
        assert result.startswith("<table>")
        assert "<td>1</td>" in result


class TestSingleBlockParagraph:
    """A <p> is dropped only when it holds exactly one table or div."""

    @staticmethod
    def _paragraph(*children: HtmlElement, text: str | None = None) -> HtmlElement:
        element = Element("p")
        element.text = text
        element.extend(children)
        return element

    def test_single_div_replaces_paragraph(self):
        block = Element("div")
        block.text = "A"

        result = _unwrap_single_block(self._paragraph(block))

        assert result.tag == "div"
        assert result.getparent() is None
        assert tostring(result, encoding="unicode") == "<div>A</div>"

    def test_blocks_separated_by_text_are_kept_in_paragraph(self):
        first = Element("div")
        first.text = "A"
        first.tail = " mid "
        second = Element("div")
        second.text = "B"
        paragraph = self._paragraph(first, second)

        assert _unwrap_single_block(paragraph) is paragraph

    def test_single_block_with_trailing_text_is_kept(self):
        block = Element("div")
        block.text = "A"
        block.tail = " and more"
        paragraph = self._paragraph(block)

        assert _unwrap_single_block(paragraph) is paragraph

    def test_leading_text_is_kept(self):
        paragraph = self._paragraph(Element("table"), text="Intro")

        assert _unwrap_single_block(paragraph) is paragraph

    def test_inline_child_is_kept(self):
        paragraph = self._paragraph(Element("span"))

        assert _unwrap_single_block(paragraph) is paragraph


class TestControlCharacters:
    """XML-incompatible control characters never reach lxml."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("a\x0bb <b>x</b>", "ab <b>x</b>"),
            ("a\x0cb <b>x</b>", "ab <b>x</b>"),
            ("<b>x</b>\x01y", "<b>x</b>y"),
            ("plain\x01 text", "plain text"),
        ],
    )
    def test_control_characters_are_removed(self, value, expected):
        assert sanitize_markup(value) == expected

    def test_tabs_and_newlines_survive(self):
        assert sanitize_markup("<b>x</b>\ty\nz") == "<b>x</b>\ty\nz"


class TestAttributes:
    """Presentation attributes are stripped, others kept."""

    def test_presentation_attributes_are_stripped(self):
        value = (
            '<table style="color:red" width="100%" cellspacing="0" cellpadding="2" '
            'border="1" class="wTable"><tr><td height="5">2+</td></tr></table>'
        )

        result = sanitize_markup(value)

        for attribute in ("style=", "width=", "height=", "cellspacing=", "cellpadding=", "border="):
            assert attribute not in result
        assert 'class="wTable"' in result
        assert "<td>2+</td>" in result

    def test_allowed_vocabulary_survives(self):
        value = '<ul><li><span class="kwb">CHARACTER</span><br>unit</li></ul>'

        assert sanitize_markup(value) == value


class TestIdempotence:
    """Sanitizing sanitized output changes nothing."""

    @pytest.mark.parametrize(
        "value",
        [
            '<p>&nbsp;</p><div class="abName">X</div><a href="#">Link</a>',
            '<p style="x">Re-roll <i>one</i> Hit roll &amp; one Wound roll.</p>',
            '<div class="dsAbility"><b>Leader:</b> This model can lead <a href="#">units</a>.</div>',
            "<p><table width=\"3\"><tr><td>A</td></tr></table></p>",
            "Tooth & Claw",
            "plain",
        ],
    )
    def test_sanitize_is_idempotent(self, value):
        once = sanitize_markup(value)

        assert sanitize_markup(once) == once
