"""Tests for request variant generation."""

from chatbridge.responses.variants import generate_variants


def _full_request() -> dict:
    return {
        "model": "gpt-test",
        "input": [{"role": "user", "content": "hello"}],
        "stream": False,
        "instructions": "Be brief.",
        "max_output_tokens": 64,
        "reasoning": {"effort": "high"},
    }


class TestGenerateVariants:
    """Tests for the ordered variant list."""

    def test_minimal_request_yields_single_variant(self):
        base = {"model": "m", "input": [], "stream": False}
        assert generate_variants(base) == [base]

    def test_full_request_yields_at_least_five_distinct_variants(self):
        base = _full_request()
        variants = generate_variants(base)

        assert len(variants) >= 5
        assert variants[0] == base
        for i, left in enumerate(variants):
            for right in variants[i + 1:]:
                assert left != right

    def test_order_of_variants(self):
        variants = generate_variants(_full_request())

        assert variants[1]["max_tokens"] == 64
        assert "max_output_tokens" not in variants[1]

        assert "instructions" not in variants[2]
        assert variants[2]["input"][0] == {
            "role": "developer",
            "content": [{"type": "input_text", "text": "Be brief."}],
        }
        assert variants[2]["input"][1:] == [{"role": "user", "content": "hello"}]

        assert "instructions" not in variants[3]
        assert variants[3]["max_tokens"] == 64

        assert variants[4]["reasoning_effort"] == "high"
        assert "reasoning" not in variants[4]

        assert "reasoning" not in variants[5]
        assert "reasoning_effort" not in variants[5]

    def test_reasoning_only_adds_flattened_and_stripped(self):
        base = {"model": "m", "input": [], "stream": False, "reasoning": {"effort": "low"}}
        variants = generate_variants(base)

        assert len(variants) == 3
        assert variants[1] == {"model": "m", "input": [], "stream": False, "reasoning_effort": "low"}
        assert variants[2] == {"model": "m", "input": [], "stream": False}

    def test_blank_instructions_are_not_inlined(self):
        base = {"model": "m", "input": [], "stream": False, "instructions": "   "}
        assert generate_variants(base) == [base]

    def test_base_request_is_not_mutated(self):
        base = _full_request()
        snapshot = _full_request()
        generate_variants(base)
        assert base == snapshot
