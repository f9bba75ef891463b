"""
Tests for the tokenizer.
"""


class TestTokenize:
    """Tests for the tokenize function."""

    def test_lowercases_and_splits(self):
        """Test text is lower-cased and split on whitespace."""
        from memory_search.tokenizer import tokenize

        assert tokenize("The Quick BROWN fox") == ["the", "quick", "brown", "fox"]

    def test_drops_short_tokens(self):
        """Test tokens of two characters or fewer are discarded."""
        from memory_search.tokenizer import tokenize

        assert tokenize("a an to the of it") == ["the"]

    def test_non_word_characters_separate_tokens(self):
        """Test punctuation is treated as whitespace."""
        from memory_search.tokenizer import tokenize

        assert tokenize("e-mail: foo@bar.com!") == ["mail", "foo", "bar", "com"]

    def test_underscore_is_a_word_character(self):
        """Test underscores stay inside tokens."""
        from memory_search.tokenizer import tokenize

        assert tokenize("snake_case value") == ["snake_case", "value"]

    def test_empty_input(self):
        """Test empty and whitespace-only input yield no tokens."""
        from memory_search.tokenizer import tokenize

        assert tokenize("") == []
        assert tokenize("   \n\t ") == []

    def test_repeated_words_preserved(self):
        """Test duplicates are kept so frequencies can be counted."""
        from memory_search.tokenizer import tokenize

        assert tokenize("fox fox FOX") == ["fox", "fox", "fox"]

    def test_idempotent(self):
        """Test re-tokenizing joined tokens gives the same tokens."""
        from memory_search.tokenizer import tokenize

        samples = [
            "The quick brown fox jumps over the lazy dog",
            "Remember: call Bob @ 5pm re. the Q3 budget!!",
            "naïve café déjà-vu",
            "x y z",
        ]
        for text in samples:
            tokens = tokenize(text)
            assert tokenize(" ".join(tokens)) == tokens

    def test_deterministic(self):
        from memory_search.tokenizer import tokenize

        text = "Deterministic output, every single time."
        assert tokenize(text) == tokenize(text)


class TestFieldTexts:
    """Tests for splitting a memory into indexed fields."""

    def test_tags_and_metadata_are_separated(self):
        """Test tags go to the tags field and other metadata is flattened."""
        from memory_search.models import FieldType
        from memory_search.tokenizer import field_texts

        fields = field_texts(
            "Body text",
            {"tags": ["Python", "ml"], "source": "user", "nested": {"inner": "deep value"}},
        )

        assert fields[FieldType.CONTENT] == "Body text"
        assert fields[FieldType.TAGS] == "Python ml"
        assert fields[FieldType.METADATA] == "user deep value"

    def test_missing_metadata(self):
        """Test None metadata produces empty metadata and tag fields."""
        from memory_search.models import FieldType
        from memory_search.tokenizer import field_texts

        fields = field_texts("only content", None)

        assert fields[FieldType.METADATA] == ""
        assert fields[FieldType.TAGS] == ""

    def test_non_string_values_are_stringified(self):
        from memory_search.models import FieldType
        from memory_search.tokenizer import field_texts

        fields = field_texts("", {"count": 42, "flags": [True, None]})

        assert fields[FieldType.METADATA] == "42 True"
