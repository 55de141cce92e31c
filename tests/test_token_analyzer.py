"""Tests for token analysis, dependency checks and statistics."""

import json

from css_walker import parse_rules
from selector_analyzer import ParseOptions, component_names_for_rules
from token_analyzer import (
    MOST_USED_LIMIT,
    analyze,
    analyze_token_dependencies,
    components_for_rules,
    find_circular_dependencies,
    find_components_using_token,
    find_orphaned_tokens,
    generate_statistics,
    token_filter,
)


COMPONENT_CSS = """
:root {
  --brand-color: #0176d3;
  --spacing-small: 0.5rem;
  --button-color: var(--brand-color);
  --unused: 3;
}
.card { padding: var(--spacing-small); }
.card__title { color: var(--brand-color); }
.badge.badge--info { margin: var(--spacing-small); }
.button { background: var(--button-color); }
"""


# ---------------------------------------------------------------------------
# Token map
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_minimal_example(self):
        css = ":root{--x:1px;} .c{color:var(--x);} .c-inner{margin:var(--x);}"
        output = analyze(css, ParseOptions(selector_prefixes=["c"]))
        assert output == {"--x": {"value": "1px", "type": "dimension", "usedIn": ["c"]}}

    def test_value_and_type(self):
        output = analyze(COMPONENT_CSS)
        assert output["--brand-color"]["value"] == "#0176d3"
        assert output["--brand-color"]["type"] == "color"
        assert output["--unused"] == {"value": "3", "type": "other"}

    def test_reference_token_has_no_value(self):
        token = analyze(COMPONENT_CSS)["--button-color"]
        assert token["refersTo"] == ["--brand-color"]
        assert "value" not in token
        assert "type" not in token

    def test_used_in_sorted_and_unique(self):
        output = analyze(COMPONENT_CSS)
        assert output["--spacing-small"]["usedIn"] == ["badge", "card"]
        assert output["--brand-color"]["usedIn"] == ["card"]

    def test_token_used_by_other_token_only(self):
        # :root has no class names, so it resolves to no component
        css = ":root { --a: 1px; --b: var(--a); }"
        assert "usedIn" not in analyze(css)["--a"]

    def test_last_value_wins(self):
        css = ":root { --x: 1px; } .dark { --x: 2px; }"
        assert analyze(css)["--x"]["value"] == "2px"

    def test_first_reference_wins(self):
        css = ":root { --a: var(--b); } .dark { --a: var(--c); }"
        assert analyze(css)["--a"]["refersTo"] == ["--b"]

    def test_reference_beats_later_literal(self):
        css = ":root { --a: var(--b); } .dark { --a: 2px; }"
        assert analyze(css)["--a"] == {"refersTo": ["--b"]}

    def test_output_keys_are_declared_tokens(self):
        output = analyze(COMPONENT_CSS + ".x { color: var(--undeclared); }")
        assert set(output) == {"--brand-color", "--spacing-small", "--button-color", "--unused"}

    def test_declaration_order_kept(self):
        output = analyze(COMPONENT_CSS)
        assert list(output) == ["--brand-color", "--spacing-small", "--button-color", "--unused"]

    def test_selector_prefix_limits_components(self):
        css = ":root { --x: 1px; } .slds-card { margin: var(--x); } .other { margin: var(--x); }"
        output = analyze(css, ParseOptions(selector_prefixes=["slds-"]))
        assert output["--x"]["usedIn"] == ["slds-card"]

    def test_functional_pseudo_class_keeps_attribution(self):
        css = ":root { --x: 1px; } .card:is(:hover, :focus) { margin: var(--x); }"
        assert analyze(css)["--x"]["usedIn"] == ["card"]

    def test_classes_inside_not_resolve(self):
        css = ":root { --x: 1px; } .badge { margin: 0; } :host(.badge) .icon:not(.a, .b) { margin: var(--x); }"
        output = analyze(css, ParseOptions(selector_prefixes=["badge"]))
        assert output["--x"]["usedIn"] == ["badge"]

    def test_empty_stylesheet(self):
        assert analyze("") == {}

    def test_json_serializable(self):
        output = analyze(COMPONENT_CSS)
        assert json.loads(json.dumps(output)) == output


class TestComponentsUsingToken:
    def test_matches_analyze(self):
        rules = parse_rules(COMPONENT_CSS)
        component_names = component_names_for_rules(rules, ParseOptions())
        output = analyze(COMPONENT_CSS)
        for token_name, token in output.items():
            expected = token.get("usedIn", [])
            assert find_components_using_token(rules, token_name, component_names) == expected

    def test_selector_list_contributes_each_component(self):
        rules = parse_rules(".card, .badge { margin: var(--x); }")
        assert components_for_rules(rules, ["badge", "card"]) == ["badge", "card"]

    def test_unknown_component(self):
        rules = parse_rules(".widget { margin: var(--x); }")
        assert components_for_rules(rules, ["card"]) == []


# ---------------------------------------------------------------------------
# Token filters
# ---------------------------------------------------------------------------


class TestTokenFilter:
    def test_no_filters(self):
        include = token_filter(ParseOptions())
        assert include("--anything")

    def test_prefix_with_or_without_sigil(self):
        for prefix in ("slds-", "--slds-"):
            include = token_filter(ParseOptions(token_prefixes=[prefix]))
            assert include("--slds-color")
            assert not include("--lwc-color")

    def test_exclusion_pattern(self):
        include = token_filter(ParseOptions(exclude_tokens=["-deprecated$"]))
        assert not include("--color-deprecated")
        assert include("--color")

    def test_filters_applied_by_analyze(self):
        css = ":root { --slds-a: 1px; --lwc-b: 2px; --slds-c-deprecated: 3px; }"
        options = ParseOptions(token_prefixes=["slds-"], exclude_tokens=["deprecated"])
        assert list(analyze(css, options)) == ["--slds-a"]

    def test_filtered_token_still_referenced(self):
        css = ":root { --lwc-b: 2px; --slds-a: var(--lwc-b); }"
        output = analyze(css, ParseOptions(token_prefixes=["slds-"]))
        assert output == {"--slds-a": {"refersTo": ["--lwc-b"]}}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


class TestDependencies:
    def test_dependency_map(self):
        deps = analyze_token_dependencies(":root { --a: var(--b) var(--c); --b: var(--c); --c: 1px; }")
        assert deps == {"--a": ["--b", "--c"], "--b": ["--c"]}

    def test_last_declaration_wins(self):
        deps = analyze_token_dependencies(":root { --a: var(--b); } .dark { --a: var(--c); }")
        assert deps == {"--a": ["--c"]}

    def test_regular_properties_ignored(self):
        assert analyze_token_dependencies(".a { color: var(--x); }") == {}


class TestCircularDependencies:
    def test_no_cycles(self):
        assert find_circular_dependencies(":root { --a: var(--b); --b: var(--c); --c: 1px; }") == []

    def test_two_token_cycle(self):
        assert find_circular_dependencies(":root { --a: var(--b); --b: var(--a); }") == [["--a", "--b", "--a"]]

    def test_self_reference(self):
        assert find_circular_dependencies(":root { --a: var(--a); }") == [["--a", "--a"]]

    def test_cycle_behind_chain(self):
        css = ":root { --start: var(--a); --a: var(--b); --b: var(--c); --c: var(--a); }"
        assert find_circular_dependencies(css) == [["--a", "--b", "--c", "--a"]]

    def test_long_chain_without_cycle(self):
        chain = "".join(f"--t{i}: var(--t{i + 1});" for i in range(1500))
        assert find_circular_dependencies(":root {" + chain + "--t1500: 1px; }") == []

    def test_long_chain_closing_into_cycle(self):
        chain = "".join(f"--t{i}: var(--t{i + 1});" for i in range(1500))
        cycles = find_circular_dependencies(":root {" + chain + "--t1500: var(--t0); }")
        assert cycles == [[f"--t{i}" for i in range(1501)] + ["--t0"]]

    def test_repeated_reference_reported_once(self):
        css = ":root { --a: var(--b) var(--b); --b: var(--a); }"
        assert find_circular_dependencies(css) == [["--a", "--b", "--a"]]

    def test_cycle_starts_and_ends_with_same_token(self):
        css = ":root { --x: var(--y); --y: var(--z); --z: var(--x); --q: var(--q); }"
        for cycle in find_circular_dependencies(css):
            assert cycle[0] == cycle[-1]
            assert len(cycle) >= 2


class TestOrphanedTokens:
    def test_undeclared_references(self):
        css = ":root { --x: var(--y2); } .a { color: var(--missing); margin: var(--x); }"
        assert find_orphaned_tokens(css) == ["--missing", "--y2"]

    def test_everything_declared(self):
        assert find_orphaned_tokens(":root { --x: 1px; } .a { margin: var(--x); }") == []


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


class TestStatistics:
    def test_counts(self):
        stats = generate_statistics(analyze(COMPONENT_CSS))
        assert stats["totalTokens"] == 4
        assert stats["tokensWithValues"] == 3
        assert stats["tokensWithReferences"] == 1
        assert stats["tokensByType"] == {"color": 1, "dimension": 1, "other": 1}

    def test_most_used_ordering(self):
        stats = generate_statistics(analyze(COMPONENT_CSS))
        assert stats["mostUsedTokens"][:2] == [
            {"token": "--spacing-small", "usageCount": 2},
            {"token": "--brand-color", "usageCount": 1},
        ]

    def test_ties_keep_token_order(self):
        output = {
            "--a": {"value": "1", "type": "other"},
            "--b": {"value": "1", "type": "other", "usedIn": ["x"]},
            "--c": {"value": "1", "type": "other"},
            "--d": {"value": "1", "type": "other", "usedIn": ["y"]},
        }
        tokens = [item["token"] for item in generate_statistics(output)["mostUsedTokens"]]
        assert tokens == ["--b", "--d", "--a", "--c"]

    def test_zero_usage_included(self):
        stats = generate_statistics({"--a": {"value": "1", "type": "other"}})
        assert stats["mostUsedTokens"] == [{"token": "--a", "usageCount": 0}]

    def test_most_used_limit(self):
        output = {f"--t{i}": {"value": "1", "type": "other"} for i in range(MOST_USED_LIMIT + 5)}
        assert len(generate_statistics(output)["mostUsedTokens"]) == MOST_USED_LIMIT

    def test_empty_output(self):
        assert generate_statistics({}) == {
            "totalTokens": 0,
            "tokensWithValues": 0,
            "tokensWithReferences": 0,
            "mostUsedTokens": [],
            "tokensByType": {},
        }
