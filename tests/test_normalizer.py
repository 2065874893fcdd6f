import json

from canvas_designer.services.normalizer import (
    DEFAULT_PALETTE,
    Invalid,
    Valid,
    designs_to_payload,
    extract_json_payload,
    fallback_design,
    normalize,
    parse_payload,
    validate_design,
)
from tests.conftest import make_design

PROMPT = "modern poster for a coffee shop"


def test_fenced_json_block_yields_one_design_per_entry(three_design_reply):
    designs = normalize(three_design_reply, PROMPT)

    assert len(designs) == 3
    assert [d.title for d in designs] == ["Coffee Poster 1", "Coffee Poster 2", "Coffee Poster 3"]
    for design in designs:
        assert design.colors
        assert design.text_elements
        assert design.shapes


def test_json_label_preferred_over_other_fences():
    raw = "```text\nnot json\n```\n```json\n" + json.dumps({"designs": [make_design()]}) + "\n```"

    assert extract_json_payload(raw).startswith("{")
    assert normalize(raw, PROMPT)[0].title == "Coffee Poster 1"


def test_unlabelled_fence_and_bare_braces_are_recognised():
    body = json.dumps({"designs": [make_design()]})

    assert len(normalize("```\n" + body + "\n```", PROMPT)) == 1
    assert len(normalize("Here you go: " + body + " Enjoy!", PROMPT)) == 1


def test_top_level_sequence_is_accepted():
    raw = "```json\n" + json.dumps([make_design(0), make_design(1)]) + "\n```"

    result = parse_payload(raw)

    assert isinstance(result, Valid)
    assert len(normalize(raw, PROMPT)) == 2


def test_non_json_reply_falls_back_to_single_prompt_design():
    designs = normalize("Sorry, I cannot help with that.", PROMPT)

    assert len(designs) == 1
    design = designs[0]
    assert PROMPT in design.title
    assert design.text_elements[0].text == PROMPT
    assert design.text_elements[1].text == "AI Generated Design"
    assert design.colors == DEFAULT_PALETTE
    assert design.shapes[0].type == "rectangle"


def test_fallback_title_truncates_long_prompts():
    prompt = "a very long description of a poster for a neighbourhood coffee shop"

    design = fallback_design(prompt)

    assert design.title == f"Design for: {prompt[:30]}..."
    assert design.text_elements[0].text == prompt


def test_fallback_title_keeps_short_prompts_whole():
    assert fallback_design("tea menu").title == "Design for: tea menu"


def test_empty_colors_get_default_palette():
    raw = json.dumps({"designs": [make_design(colors=[])]})

    assert normalize(raw, PROMPT)[0].colors == DEFAULT_PALETTE


def test_missing_designs_key_is_structural_failure():
    assert isinstance(parse_payload('{"foo": 1}'), Invalid)
    assert isinstance(parse_payload('{"designs": []}'), Invalid)
    assert normalize('{"designs": []}', PROMPT)[0].text_elements[0].text == PROMPT


def test_non_object_design_entry_discards_whole_response():
    raw = json.dumps({"designs": [make_design(), "just a string"]})

    designs = normalize(raw, PROMPT)

    assert len(designs) == 1
    assert designs[0].title.startswith("Design for:")


def test_missing_optional_fields_are_defaulted_per_design():
    raw = json.dumps({"designs": [{"colors": ["#111111", "#222222"]}, {}]})

    first, second = normalize(raw, PROMPT)

    assert first.title == "Design 1"
    assert second.title == "Design 2"
    assert first.description == "AI-generated design concept"
    assert first.elements == ["text", "shapes", "background"]
    assert first.layout == "modern layout"
    assert [t.text for t in first.text_elements] == [f"{PROMPT} Title", "Subtitle"]
    assert first.text_elements[0].color == "#222222"
    assert first.text_elements[1].color == "#666666"
    assert first.shapes[0].color == "#111111"
    assert (first.shapes[0].width, first.shapes[0].height) == (200, 100)
    assert second.text_elements[0].color == "#000000"
    assert second.shapes[0].color == "#6366F1"


def test_synthesized_text_uses_design_title_and_description():
    result = validate_design({"title": "Latte Art", "description": "Soft pastel look"}, 0, PROMPT)

    assert isinstance(result, Valid)
    texts = result.value.text_elements
    assert (texts[0].text, texts[0].font_size, texts[0].font_weight) == ("Latte Art", 48, "bold")
    assert (texts[1].text, texts[1].font_size, texts[1].font_weight) == ("Soft pastel look", 24, "normal")


def test_broken_entries_are_dropped_individually():
    raw = make_design(
        textElements=[{"text": ""}, "oops", {"text": "Keep me", "fontSize": "36px", "fontWeight": 700}],
        shapes=[{"type": "HEXAGON", "color": "red", "width": -5}, 42, {"type": "Triangle"}],
    )

    design = validate_design(raw, 0, PROMPT).value

    assert [t.text for t in design.text_elements] == ["Keep me"]
    assert design.text_elements[0].font_size == 36
    assert design.text_elements[0].font_weight == "bold"
    assert [s.type for s in design.shapes] == ["rectangle", "triangle"]
    assert design.shapes[0].color == "#6366F1"
    assert design.shapes[0].width == 100


def test_invalid_colors_and_weights_are_replaced():
    raw = make_design(
        colors=["#abc", "blue", 7, "#A1B2C3"],
        textElements=[{"text": "Hi", "fontWeight": "extra-heavy", "color": "black"}],
    )

    design = validate_design(raw, 0, PROMPT).value

    assert design.colors == ["#abc", "#A1B2C3"]
    assert design.text_elements[0].font_weight == "normal"
    assert design.text_elements[0].color == "#000000"
    assert design.text_elements[0].font_size == 24


def test_order_is_preserved():
    raw = make_design(
        colors=["#000001", "#000002", "#000003", "#000004"],
        textElements=[{"text": str(i)} for i in range(5)],
    )

    design = validate_design(raw, 0, PROMPT).value

    assert design.colors == ["#000001", "#000002", "#000003", "#000004"]
    assert [t.text for t in design.text_elements] == ["0", "1", "2", "3", "4"]


def test_renormalizing_output_changes_nothing(three_design_reply):
    first = normalize(json.dumps({"designs": [{}, {"title": "Only title"}]}), PROMPT)
    second = normalize(json.dumps(designs_to_payload(first)), PROMPT)

    assert second == first

    full = normalize(three_design_reply, PROMPT)
    assert normalize(json.dumps(designs_to_payload(full)), "another prompt") == full


def test_fallback_output_is_stable_when_renormalized():
    first = normalize("no json here", PROMPT)

    assert normalize(json.dumps(designs_to_payload(first)), PROMPT) == first


def test_none_input_never_raises():
    designs = normalize(None, PROMPT)

    assert len(designs) == 1


def test_font_size_accepts_only_a_px_suffix():
    raw = make_design(textElements=[
        {"text": "a", "fontSize": "40px"},
        {"text": "b", "fontSize": "40xp"},
        {"text": "c", "fontSize": "40 PX"},
    ])

    design = validate_design(raw, 0, PROMPT).value

    assert [t.font_size for t in design.text_elements] == [40, 24, 40]
