from textwrap import dedent

import pytest

from core.errors import MalformedInputError
from data.tokenizer import LineNormalizer
from domain.entities import Variant


def test_lines_keep_indentation_and_comment_flags(settings):
    content = "int a;\n  // note\n\n//\n    \n"
    snapshot = LineNormalizer(settings).normalize(content, Variant.TARGET, path="x.c")

    assert snapshot.variant == Variant.TARGET
    assert [line.raw_text for line in snapshot] == ["int a;", "  // note", "", "//", "    "]
    assert [line.index for line in snapshot] == [0, 1, 2, 3, 4]

    code, note, empty, bare, spaces = snapshot.lines
    assert code.is_code
    assert note.is_comment and not note.is_blank
    assert empty.is_blank and not empty.is_comment
    assert bare.is_comment and bare.is_blank
    assert spaces.is_blank


def test_trailing_whitespace_is_ignored_in_key_only(settings):
    snapshot = LineNormalizer(settings).normalize("int a;   \n")
    line = snapshot[0]
    assert line.raw_text == "int a;   "
    assert line.key == "int a;"


def test_trailing_whitespace_kept_when_configured(make_settings):
    active = make_settings({"comments": {"ignore_trailing_whitespace": False}})
    snapshot = LineNormalizer(active).normalize("int a;   \n")
    assert snapshot[0].key == "int a;   "


def test_multiline_block_comment(settings):
    content = dedent(
        """\
        /* header
           still comment
        */
        int x;
        #endif /* ifdef HELLO */
        """
    )
    snapshot = LineNormalizer(settings).normalize(content)

    assert [line.is_comment for line in snapshot] == [True, True, True, False, False]
    assert snapshot[2].is_blank
    assert snapshot[4].is_code


def test_comment_tokens_inside_strings_are_ignored(settings):
    content = 'printf("/* not a comment");\nprintf("doesn\'t */ matter");\n'
    snapshot = LineNormalizer(settings).normalize(content)
    assert all(line.is_code for line in snapshot)


def test_unterminated_block_comment_raises_with_location(settings):
    content = "int a;\n/* open\nint b;\n"
    with pytest.raises(MalformedInputError) as exc:
        LineNormalizer(settings).normalize(content, path="broken.c")

    assert exc.value.path == "broken.c"
    assert exc.value.line_number == 2
    assert "broken.c:2" in str(exc.value)


def test_stray_block_comment_close_raises(settings):
    with pytest.raises(MalformedInputError) as exc:
        LineNormalizer(settings).normalize("int a;\nint b; */\n")
    assert exc.value.line_number == 2


def test_read_rejects_invalid_utf8(settings, tmp_path):
    path = tmp_path / "latin1.c"
    path.write_bytes(b"int a;\n// caf\xe9\n")

    with pytest.raises(MalformedInputError) as exc:
        LineNormalizer(settings).read(str(path), Variant.SOURCE)
    assert exc.value.line_number == 2


def test_read_fixture(settings, samples_dir):
    path = samples_dir / "filter" / "source_variant" / "version-1" / "main.c"
    snapshot = LineNormalizer(settings).read(str(path), Variant.SOURCE)

    assert len(snapshot) == 32
    assert snapshot.path == str(path)
    assert snapshot[21].raw_text == "// THIS ONE SHOULD STAY"
    assert snapshot[21].is_comment
    assert snapshot[27].is_code


def test_custom_comment_syntax(make_settings):
    active = make_settings({"comments": {"line_tokens": ["#"], "block_pairs": []}})
    snapshot = LineNormalizer(active).normalize("x = 1\n# keep me\n#\n")
    assert snapshot[0].is_code
    assert snapshot[1].is_comment and not snapshot[1].is_blank
    assert snapshot[2].is_blank
