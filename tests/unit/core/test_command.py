"""Tests for jbplugins.core.command module."""

from jbplugins.core.command import decode_command, encode_command, quote_if_needed


class TestQuoteIfNeeded:
    """Tests for quote_if_needed function."""

    def test_leaves_plain_value(self):
        """Values without spaces are unchanged."""
        assert quote_if_needed("IdeaVIM") == "IdeaVIM"

    def test_quotes_value_with_space(self):
        """Values with spaces are wrapped in double quotes."""
        assert quote_if_needed("Key Promoter X") == '"Key Promoter X"'


class TestEncodeCommand:
    """Tests for encode_command function."""

    def test_quotes_path_and_ids_with_spaces(self):
        """Path and identifiers with spaces are quoted independently."""
        command = encode_command(
            "/Applications/IntelliJ IDEA.app/Contents/MacOS/idea",
            ["izhangzhihao.rainbow.brackets", "IdeaVIM", "Key Promoter X"],
        )

        assert command == (
            '"/Applications/IntelliJ IDEA.app/Contents/MacOS/idea" installPlugins '
            'izhangzhihao.rainbow.brackets IdeaVIM "Key Promoter X"'
        )

    def test_bare_command_name(self):
        """A bare command name is not quoted."""
        assert encode_command("idea", ["IdeaVIM"]) == "idea installPlugins IdeaVIM"

    def test_keeps_already_quoted_path(self):
        """A pre-quoted path is not quoted again."""
        path = '"/mnt/c/Program Files/JetBrains/IntelliJ IDEA 2023.3/bin/idea64.exe"'

        command = encode_command(path, ["IdeaVIM"])

        assert command == f"{path} installPlugins IdeaVIM"

    def test_no_ids(self):
        """An empty selection still yields the verb."""
        assert encode_command("idea", []) == "idea installPlugins"


class TestDecodeCommand:
    """Tests for decode_command function."""

    def test_round_trip(self):
        """Decoding an encoded command recovers the identifiers in order."""
        ids = ["izhangzhihao.rainbow.brackets", "IdeaVIM", "Key Promoter X"]
        command = encode_command("/Applications/IntelliJ IDEA.app/Contents/MacOS/idea", ids)

        assert decode_command(command) == ids

    def test_round_trip_with_prequoted_path(self):
        """Round trip holds for paths that arrive already quoted."""
        ids = ["IdeaVIM", "Key Promoter X"]
        command = encode_command('"C:\\Program Files\\JetBrains\\bin\\idea64.exe"', ids)

        assert decode_command(command) == ids

    def test_missing_verb_returns_empty(self):
        """Text without installPlugins yields no identifiers."""
        assert decode_command("hello world") == []

    def test_verb_without_arguments_returns_empty(self):
        """The verb alone yields no identifiers."""
        assert decode_command("idea installPlugins") == []
        assert decode_command("idea installPlugins   ") == []

    def test_verb_is_case_insensitive(self):
        """The verb is matched regardless of case."""
        assert decode_command("idea INSTALLPLUGINS IdeaVIM") == ["IdeaVIM"]

    def test_collapses_repeated_spaces(self):
        """Runs of spaces between identifiers produce no empty entries."""
        assert decode_command("idea installPlugins  a   b") == ["a", "b"]

    def test_ignores_verb_inside_quoted_path(self):
        """A verb-like segment inside the quoted executable path is skipped."""
        command = '"/opt/installPlugins here/idea" installPlugins IdeaVIM'

        assert decode_command(command) == ["IdeaVIM"]

    def test_identifier_with_double_quote_degrades(self):
        """Identifiers containing a double quote are not supported.

        The quote toggles quoting mode, so the rest of the line is read as
        one identifier and the quote itself is dropped. This documents the
        behavior rather than endorsing it.
        """
        assert decode_command('idea installPlugins a"b c') == ["ab c"]

    def test_double_quote_breaks_round_trip(self):
        """Round trip does not hold for an identifier containing a double quote."""
        ids = ['we"ird', "IdeaVIM"]

        assert decode_command(encode_command("idea", ids)) != ids
