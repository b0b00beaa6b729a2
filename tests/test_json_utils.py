"""Unit tests for JSON extraction from LLM replies."""

from manufacturer_intel.utils.json_utils import (
    coerce_float,
    coerce_int,
    coerce_str,
    coerce_str_list,
    extract_json_block,
)


def test_extracts_object_from_fenced_reply():
    reply = 'Sure! Here it is:\n```json\n{"website": "https://acme.example", "confidence": "high"}\n```'
    assert extract_json_block(reply) == {"website": "https://acme.example", "confidence": "high"}


def test_braces_inside_strings_do_not_end_the_span():
    reply = '{"reasoning": "uses {curly} braces", "ok": true} trailing {junk'
    assert extract_json_block(reply) == {"reasoning": "uses {curly} braces", "ok": True}


def test_extracts_array():
    reply = 'Results:\n[{"url": "https://acme.example", "title": "Acme"}]'
    assert extract_json_block(reply, kind="array") == [{"url": "https://acme.example", "title": "Acme"}]


def test_skips_unparsable_span():
    reply = '[not json] then [{"url": "https://acme.example"}]'
    assert extract_json_block(reply, kind="array") == [{"url": "https://acme.example"}]


def test_returns_none_without_json():
    assert extract_json_block("") is None
    assert extract_json_block(None) is None
    assert extract_json_block("no json here") is None
    assert extract_json_block('{"unterminated": ') is None


def test_coercions():
    assert coerce_str("  Dallas, TX ") == "Dallas, TX"
    assert coerce_str("null") is None
    assert coerce_str("") is None
    assert coerce_str({"a": 1}) is None
    assert coerce_str_list(["FDA", "", None, "AAFCO"]) == ["FDA", "AAFCO"]
    assert coerce_str_list("FDA") == ["FDA"]
    assert coerce_str_list(42) == []
    assert coerce_int("1,200") == 1200
    assert coerce_int(True) is None
    assert coerce_int("about a hundred") is None
    assert coerce_float("0.85") == 0.85
    assert coerce_float("high") is None
