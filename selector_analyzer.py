"""
Selector Analyzer for the Design Token Extractor
------------------------------------------------
Infers component names from the class selectors of a stylesheet and maps a
selector's classes back to the component it belongs to.

Component names are the shortest class-name prefixes left after BEM
element/modifier suffixes are stripped, e.g. with the ``slds-`` prefix:

    slds-align, slds-align-bottom, slds-button, slds-button__icon
    -> slds-align, slds-button
"""

import logging
import re
from dataclasses import dataclass, field, fields

from css_walker import extract_class_names

logger = logging.getLogger(__name__)

DEFAULT_BEM_SEPARATORS = ['__', '--']

# camelCase keys accepted in JSON config files
OPTION_ALIASES = {
    'selectorPrefixes': 'selector_prefixes',
    'tokenPrefixes': 'token_prefixes',
    'bemSeparators': 'bem_separators',
    'excludeClasses': 'exclude_classes',
    'excludeTokens': 'exclude_tokens',
}


@dataclass
class ParseOptions:
    selector_prefixes: list = field(default_factory=list)
    token_prefixes: list = field(default_factory=list)
    bem_separators: list = field(default_factory=lambda: list(DEFAULT_BEM_SEPARATORS))
    exclude_classes: list = field(default_factory=list)
    exclude_tokens: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'ParseOptions':
        """Build options from a config mapping with camelCase or snake_case keys"""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown option '{key}'")
            if isinstance(value, str):
                value = [value]
            kwargs[name] = list(value)
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return {f.name: list(getattr(self, f.name)) for f in fields(self)}


def _longest_first(values):
    return sorted(values, key=len, reverse=True)


def compile_patterns(patterns):
    """Compile exclusion patterns, raising re.error for an invalid one"""
    return [re.compile(pattern) for pattern in patterns]


def filter_class_names(class_names, options):
    """Keep class names with a configured prefix that no exclusion pattern matches"""
    prefixes = options.selector_prefixes
    excluded = compile_patterns(options.exclude_classes)
    kept = []
    for name in class_names:
        if prefixes and not any(name.startswith(prefix) for prefix in prefixes):
            continue
        if any(pattern.search(name) for pattern in excluded):
            continue
        kept.append(name)
    return kept


def remove_modifiers(class_name, prefixes, separators):
    """Strip BEM element/modifier suffixes, keeping the selector prefix"""
    prefix = next((p for p in prefixes if class_name.startswith(p)), '')
    base = class_name[len(prefix):]
    for separator in separators:
        base = base.split(separator)[0]
    return f"{prefix}{base}"


def select_component_names(sorted_names):
    """Pick the shortest name from each group of names sharing a prefix

    ``sorted_names`` must be sorted and unique: sorting places a name right
    before every name it prefixes, so each group is a contiguous run.
    """
    component_names = []
    lead = 0
    scan = lead + 1
    while lead < len(sorted_names):
        if scan >= len(sorted_names) or not sorted_names[scan].startswith(sorted_names[lead]):
            component_names.append(sorted_names[lead])
            lead = scan
            scan = lead + 1
        else:
            scan += 1
    return component_names


def infer_component_names(class_names, options=None):
    """Infer the minimal set of component names covering the given class names"""
    options = options or ParseOptions()
    prefixes = _longest_first(options.selector_prefixes)
    separators = _longest_first(options.bem_separators)

    # Remove modifiers before sorting so related names end up adjacent
    normalized = {
        remove_modifiers(name, prefixes, separators)
        for name in filter_class_names(class_names, options)
    }
    # An empty base would prefix every class name
    normalized = sorted(name for name in normalized if name)
    component_names = select_component_names(normalized)
    logger.debug("Inferred %d component names from %d class names",
                 len(component_names), len(class_names))
    return component_names


def component_names_for_rules(rules, options=None):
    """Infer component names from the selectors of every parsed rule"""
    class_names = []
    for rule in rules:
        class_names.extend(extract_class_names(rule.selector))
    return infer_component_names(class_names, options)


def resolve_component_name(class_names, component_names):
    """Find the component owning a selector, trying its rightmost class first"""
    for class_name in reversed(class_names):
        for component_name in component_names:
            if class_name.startswith(component_name):
                return component_name
    return None
