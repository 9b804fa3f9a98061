from __future__ import annotations

from research_engine.ai.parsing import MAX_QUESTIONS, extract_references, parse_questions, truncate_text


def test_parse_questions_caps_json_array_at_five() -> None:
  parsed = parse_questions('["A?","B?","C?","D?","E?","F?"]', "query")
  assert parsed.questions == ("A?", "B?", "C?", "D?", "E?")
  assert parsed.source == "json"


def test_parse_questions_extracts_array_embedded_in_prose() -> None:
  parsed = parse_questions('Here are your questions:\n["Why?", "How?"]\nHope this helps.', "query")
  assert parsed.questions == ("Why?", "How?")
  assert parsed.source == "json_substring"


def test_parse_questions_skips_non_string_items() -> None:
  parsed = parse_questions('["Valid?", 3, "", null, "Also valid?"]', "query")
  assert parsed.questions == ("Valid?", "Also valid?")


def test_parse_questions_falls_back_to_numbered_lines() -> None:
  text = "Some intro\n1. First question?\n2) Second question?\n- not numbered\n3. **Third question?**"
  parsed = parse_questions(text, "query")
  assert parsed.questions == ("First question?", "Second question?", "Third question?")
  assert parsed.source == "numbered_lines"


def test_parse_questions_synthesizes_when_nothing_parses() -> None:
  parsed = parse_questions("I cannot help with that.", "solid-state batteries")
  assert parsed.source == "synthesized"
  assert len(parsed.questions) == MAX_QUESTIONS
  assert all(question and "solid-state batteries" in question for question in parsed.questions)


def test_truncate_text_marks_the_cut() -> None:
  assert truncate_text("abcdef", 10) == "abcdef"
  assert truncate_text("abcdef", 6) == "abcdef"
  assert truncate_text("abcdef", 3) == "abc..."


def test_extract_references_reads_list_under_heading() -> None:
  research = "Findings here.\n\n## References\n1. First source\n- Second source\n\n## Appendix\n- not a reference"
  assert extract_references(research) == ["First source", "Second source"]


def test_extract_references_accepts_bold_sources_label() -> None:
  research = "Body\n**Sources:**\n* https://example.org/a\n* https://example.org/b"
  assert extract_references(research) == ["https://example.org/a", "https://example.org/b"]


def test_extract_references_empty_without_heading() -> None:
  assert extract_references("No citations at all.") == []
