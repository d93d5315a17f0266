from markupsafe import Markup

from highlight import build_highlighter, query_tokens

MARK = '<mark class="search-highlight">{}</mark>'


class TestTokens:

    def test_split_lower_and_drop_short(self):
        assert query_tokens("  Egg  a NOODLE ") == ["egg", "noodle"]

    def test_duplicates_collapse(self):
        assert query_tokens("egg EGG Egg") == ["egg"]

    def test_empty(self):
        assert query_tokens(None) == []
        assert query_tokens("   ") == []


class TestHighlighter:

    def test_marks_each_token_case_insensitive(self):
        hl = build_highlighter("egg noodle")
        out = hl("Classic Egg Noodle Soup")
        assert out == "Classic " + MARK.format("Egg") + " " + MARK.format("Noodle") + " Soup"

    def test_partial_words_and_all_occurrences(self):
        hl = build_highlighter("pan")
        assert hl("Pancake pan, PAN") == (
            MARK.format("Pan") + "cake " + MARK.format("pan") + ", " + MARK.format("PAN")
        )

    def test_token_longer_than_text_word_does_not_match(self):
        # "noodles" is not a substring of "Noodle"
        hl = build_highlighter("egg noodles")
        assert hl("Classic Egg Noodle Soup") == "Classic " + MARK.format("Egg") + " Noodle Soup"

    def test_single_char_query_is_identity(self):
        hl = build_highlighter("a")
        assert hl("A banana") == "A banana"

    def test_identity_for_missing_text(self):
        assert build_highlighter("")(None) == ""
        assert build_highlighter("egg")(None) == ""
        assert build_highlighter("egg")("") == ""

    def test_regex_characters_are_literal(self):
        hl = build_highlighter("2.5*")
        out = hl("Dish 2.5* deep, 205 wide, 2.55 tall")
        assert out == "Dish " + MARK.format("2.5*") + " deep, 205 wide, 2.55 tall"

    def test_brackets_and_pipes(self):
        hl = build_highlighter("(xl)|")
        assert hl("Apron (XL)| size") == "Apron " + MARK.format("(XL)|") + " size"


class TestHtmlHighlighter:

    def test_escapes_around_and_inside_marks(self):
        hl = build_highlighter("pie", escape_html=True)
        out = hl("<b>Pie</b> & tart")
        assert isinstance(out, Markup)
        assert out == "&lt;b&gt;" + MARK.format("Pie") + "&lt;/b&gt; &amp; tart"

    def test_matches_raw_text_before_escaping(self):
        hl = build_highlighter("salt&pepper", escape_html=True)
        assert hl("Salt&Pepper Mill") == MARK.format("Salt&amp;Pepper") + " Mill"

    def test_no_tokens_still_escapes(self):
        hl = build_highlighter("x", escape_html=True)
        assert hl("<i>") == "&lt;i&gt;"
        assert hl(None) == ""
