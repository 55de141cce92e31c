"""
CSS Walker for the Design Token Extractor
-----------------------------------------
Parses stylesheets into rules and walks the CSS syntax tree to find:
- Custom property (design token) declarations
- var() references between tokens and from regular properties
- Class names used in selectors
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

import tinycss2

logger = logging.getLogger(__name__)

CUSTOM_PROPERTY_SIGIL = '--'

# At-rules whose block holds declarations rather than nested rules
DECLARATION_AT_RULES = {
    'font-face', 'page', 'property', 'counter-style', 'font-palette-values',
    'viewport', 'color-profile',
}


@dataclass(frozen=True)
class ParsedRule:
    selector: str
    properties: dict = field(default_factory=dict)


@dataclass(frozen=True)
class TokenReference:
    token_name: str
    referenced_tokens: tuple = ()


def is_custom_property(name: str) -> bool:
    return name.startswith(CUSTOM_PROPERTY_SIGIL)


def _parse_stylesheet(css_text):
    """Parse CSS text into the top-level tinycss2 node list"""
    return tinycss2.parse_stylesheet(css_text, skip_comments=True, skip_whitespace=True)


def _iter_rules(nodes):
    """Yield every qualified rule, descending into block at-rules like @media"""
    for node in nodes:
        if node.type == 'qualified-rule':
            yield node
        elif node.type == 'at-rule' and node.content is not None:
            if node.lower_at_keyword in DECLARATION_AT_RULES:
                continue
            nested = tinycss2.parse_rule_list(node.content, skip_comments=True, skip_whitespace=True)
            yield from _iter_rules(nested)
        elif node.type == 'error':
            logger.debug("Skipping malformed rule at %s:%s: %s",
                         node.source_line, node.source_column, node.message)


def _iter_declarations(nodes):
    """Yield every declaration in the stylesheet, including @font-face style blocks"""
    for node in nodes:
        if node.type == 'qualified-rule':
            yield from _block_declarations(node.content)
        elif node.type == 'at-rule' and node.content is not None:
            if node.lower_at_keyword in DECLARATION_AT_RULES:
                yield from _block_declarations(node.content)
            else:
                nested = tinycss2.parse_rule_list(node.content, skip_comments=True, skip_whitespace=True)
                yield from _iter_declarations(nested)


def _block_declarations(content):
    """Parse the contents of a {} block, keeping only well-formed declarations"""
    for item in tinycss2.parse_blocks_contents(content, skip_comments=True, skip_whitespace=True):
        if item.type == 'declaration':
            yield item
        elif item.type == 'error':
            logger.debug("Skipping malformed declaration at %s:%s: %s",
                         item.source_line, item.source_column, item.message)


def _serialize_value(declaration):
    return tinycss2.serialize(declaration.value).strip()


def parse_rules(css_text):
    """Parse CSS content and extract all rules with their selectors and properties"""
    try:
        nodes = _parse_stylesheet(css_text)
        rules = []
        for node in _iter_rules(nodes):
            properties = {}
            for declaration in _block_declarations(node.content):
                properties[declaration.name] = _serialize_value(declaration)
            rules.append(ParsedRule(
                selector=tinycss2.serialize(node.prelude).strip(),
                properties=properties,
            ))
        return rules
    except Exception as e:
        logger.warning("Error parsing CSS: %s", e)
        return []


def extract_custom_properties(rules):
    """Extract all CSS custom properties (design tokens) from parsed rules"""
    tokens = {}
    for rule in rules:
        for prop, value in rule.properties.items():
            if is_custom_property(prop):
                tokens[prop] = value
    return tokens


def extract_references(css_text):
    """Find the var() references made by every custom property declaration"""
    references = []
    try:
        nodes = _parse_stylesheet(css_text)
        for declaration in _iter_declarations(nodes):
            if not is_custom_property(declaration.name):
                continue
            referenced = extract_var_references(declaration.value)
            if referenced:
                references.append(TokenReference(
                    token_name=declaration.name,
                    referenced_tokens=tuple(referenced),
                ))
    except Exception as e:
        logger.warning("Error extracting token references: %s", e)
    return references


def extract_var_references(value):
    """Extract the token names passed to var() in a CSS value

    A string value is parsed into component values first; anything that
    fails to parse has no references.
    """
    if isinstance(value, str):
        try:
            value = tinycss2.parse_component_value_list(value, skip_comments=True)
        except Exception as e:
            logger.debug("Could not parse value %r: %s", value, e)
            return []

    references = []
    for node in value:
        if node.type == 'function':
            if node.lower_name == 'var':
                first = _first_significant(node.arguments)
                if first is not None and first.type == 'ident' and is_custom_property(first.value):
                    references.append(first.value)
            # Fallbacks can hold more var() calls
            references.extend(extract_var_references(node.arguments))
        elif node.type in ('() block', '[] block', '{} block'):
            references.extend(extract_var_references(node.content))
    return references


def _first_significant(nodes):
    for node in nodes:
        if node.type not in ('whitespace', 'comment'):
            return node
    return None


def classify_token(token_name, token_value):
    """Determine the type of a design token based on its name and value"""
    name = token_name.lower()
    value = token_value.lower()

    # Color tokens
    if ('color' in name or 'brand' in name or
            '#' in value or 'rgb' in value or 'hsl' in value or 'light-dark' in value):
        return 'color'

    # Spacing/dimension tokens
    if ('spacing' in name or 'margin' in name or 'padding' in name or
            'rem' in value or 'px' in value or 'em' in value):
        return 'dimension'

    # Shadow tokens
    if 'shadow' in name or 'box-shadow' in value or 'inset' in value:
        return 'shadow'

    # Font tokens
    if ('font' in name or 'text' in name or
            'font-family' in value or 'font-size' in value):
        return 'font'

    return 'other'


def extract_class_selectors(selector):
    """Return the class names of each selector in a comma-separated selector list

    Classes inside functional pseudo-classes such as ``:is()``, ``:not()``
    or ``:host()`` belong to the selector they appear in. A selector list
    with an empty member or a parse error yields ``[]``.
    """
    nodes = tinycss2.parse_component_value_list(selector, skip_comments=True)

    parts = []
    current = []
    for node in nodes:
        if node.type == 'literal' and node.value == ',':
            parts.append(current)
            current = []
        else:
            current.append(node)
    parts.append(current)

    malformed = any(node.type == 'error' for node in nodes)
    if malformed or not all(_first_significant(part) is not None for part in parts):
        logger.debug("Could not parse selector %r", selector)
        return []
    return [_class_names(part) for part in parts]


def _class_names(nodes):
    """Collect ``.name`` classes in source order, descending into function arguments"""
    names = []
    previous = None
    for node in nodes:
        if node.type == 'ident' and previous is not None and previous.type == 'literal' and previous.value == '.':
            names.append(node.value)
        elif node.type == 'function':
            names.extend(_class_names(node.arguments))
        elif node.type == '() block':
            names.extend(_class_names(node.content))
        previous = node
    return names


def extract_class_names(selector):
    """Flatten the class names of every selector in a selector list"""
    return [name for names in extract_class_selectors(selector) for name in names]


def find_usage(rules, token_name):
    """Find which CSS rules reference a specific design token"""
    return [
        rule for rule in rules
        if any(token_name in extract_var_references(value) for value in rule.properties.values())
    ]


def index_token_usage(rules):
    """Map every referenced token to the rules using it, in rule order"""
    usage = defaultdict(list)
    for rule in rules:
        referenced = []
        for value in rule.properties.values():
            referenced.extend(extract_var_references(value))
        for token_name in dict.fromkeys(referenced):
            usage[token_name].append(rule)
    return dict(usage)
