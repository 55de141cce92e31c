"""
Token Analyzer for the Design Token Extractor
---------------------------------------------
1. Builds the design token map of a stylesheet (value/type or references)
2. Attributes every token to the components whose rules use it
3. Lists token dependencies, circular references and orphaned references
4. Produces usage statistics for a token map
"""

import logging
from collections import Counter

from css_walker import (
    classify_token,
    extract_class_selectors,
    extract_custom_properties,
    extract_references,
    find_usage,
    index_token_usage,
    parse_rules,
)
from selector_analyzer import (
    ParseOptions,
    compile_patterns,
    component_names_for_rules,
    resolve_component_name,
)

logger = logging.getLogger(__name__)

MOST_USED_LIMIT = 10


def analyze(css_text, options=None):
    """Analyze CSS content and extract design tokens with their metadata"""
    options = options or ParseOptions()

    rules = parse_rules(css_text)
    tokens = extract_custom_properties(rules)

    # The first referencing declaration of a token decides its references
    references = {}
    for ref in extract_references(css_text):
        references.setdefault(ref.token_name, ref)

    # Component names depend only on the class names, so infer them once
    component_names = component_names_for_rules(rules, options)
    usage = index_token_usage(rules)
    include = token_filter(options)

    output = {}
    selector_cache = {}
    for token_name, value in tokens.items():
        if not include(token_name):
            continue

        token = {}
        ref = references.get(token_name)
        if ref and ref.referenced_tokens:
            token['refersTo'] = list(ref.referenced_tokens)
        else:
            # Only literal tokens carry a value and type
            token['value'] = value
            token['type'] = classify_token(token_name, value)

        used_in = components_for_rules(usage.get(token_name, []), component_names, selector_cache)
        if used_in:
            token['usedIn'] = used_in

        output[token_name] = token

    logger.info("Extracted %d design tokens from %d rules", len(output), len(rules))
    return output


def components_for_rules(rules, component_names, selector_cache=None):
    """Resolve the sorted, unique component names of a list of rules"""
    if selector_cache is None:
        selector_cache = {}
    components = set()
    for rule in rules:
        if rule.selector not in selector_cache:
            selector_cache[rule.selector] = extract_class_selectors(rule.selector)
        for class_names in selector_cache[rule.selector]:
            component_name = resolve_component_name(class_names, component_names)
            if component_name is not None:
                components.add(component_name)
    return sorted(components)


def find_components_using_token(rules, token_name, component_names):
    """Find which components use a specific design token"""
    return components_for_rules(find_usage(rules, token_name), component_names)


def token_filter(options):
    """Build a predicate applying the token prefix and exclusion options"""
    prefixes = [p[2:] if p.startswith('--') else p for p in options.token_prefixes]
    excluded = compile_patterns(options.exclude_tokens)

    def include(token_name):
        bare_name = token_name[2:]
        if prefixes and not any(bare_name.startswith(prefix) for prefix in prefixes):
            return False
        return not any(pattern.search(token_name) for pattern in excluded)

    return include


def analyze_token_dependencies(css_text):
    """Build the token dependency map, the last referencing declaration wins"""
    dependencies = {}
    for ref in extract_references(css_text):
        dependencies[ref.token_name] = list(ref.referenced_tokens)
    return dependencies


def find_circular_dependencies(css_text):
    """Find circular references between tokens

    Every token is explored at most once, so a cycle is reported from the
    first token of it that the search reaches. A cycle running through a
    token already explored from an earlier root is not reported again.
    """
    dependencies = analyze_token_dependencies(css_text)
    visited = set()
    cycles = []

    for root in dependencies:
        if root in visited:
            continue

        # path and stack grow and shrink together, one frame per token
        visited.add(root)
        path = [root]
        on_path = {root}
        stack = [iter(dependencies.get(root, []))]
        while stack:
            dep = next(stack[-1], None)
            if dep is None:
                stack.pop()
                on_path.discard(path.pop())
            elif dep in on_path:
                cycles.append(path[path.index(dep):] + [dep])
            elif dep not in visited:
                visited.add(dep)
                path.append(dep)
                on_path.add(dep)
                stack.append(iter(dependencies.get(dep, [])))

    if cycles:
        logger.warning("Found %d circular token references", len(cycles))
    return cycles


def find_orphaned_tokens(css_text):
    """Find tokens used through var() that are never declared"""
    rules = parse_rules(css_text)
    declared = set(extract_custom_properties(rules))
    return sorted(set(index_token_usage(rules)) - declared)


def generate_statistics(output):
    """Generate statistics about the token usage"""
    tokens_with_values = 0
    tokens_with_references = 0
    tokens_by_type = Counter()
    usage_counts = []

    for token_name, token in output.items():
        if 'value' in token:
            tokens_with_values += 1
            tokens_by_type[token.get('type', 'other')] += 1
        if token.get('refersTo'):
            tokens_with_references += 1
        usage_counts.append({'token': token_name, 'usageCount': len(token.get('usedIn', []))})

    # sorted() is stable, so ties keep the token map order
    most_used = sorted(usage_counts, key=lambda x: x['usageCount'], reverse=True)

    return {
        'totalTokens': len(output),
        'tokensWithValues': tokens_with_values,
        'tokensWithReferences': tokens_with_references,
        'mostUsedTokens': most_used[:MOST_USED_LIMIT],
        'tokensByType': dict(tokens_by_type),
    }
