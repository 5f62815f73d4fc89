from security import keys_match, sanitize


def test_sanitize_strips_angle_brackets_keeps_inner_text():
    assert sanitize("<b>hi</b>", 200) == "bhi/b"


def test_sanitize_is_idempotent():
    once = sanitize("<<script>>alert(1)</script>" * 10, 40)
    assert sanitize(once, 40) == once


def test_sanitize_truncates_after_stripping():
    assert sanitize("<" + "a" * 30, 24) == "a" * 24


def test_sanitize_non_string_is_empty():
    for value in (None, 42, ["room"], {"room": "x"}, b"bytes"):
        assert sanitize(value, 40) == ""


def test_sanitize_keeps_unicode():
    assert sanitize("민성 😺", 24) == "민성 😺"


def test_keys_match():
    assert keys_match("abc", "abc")
    assert not keys_match("abc", "xyz")
    assert keys_match(None, "")
    assert not keys_match("abc", None)
