#!/usr/bin/env python3
"""
Design Token Extractor
----------------------
Extracts CSS custom properties (design tokens) from stylesheets, resolves
which tokens refer to others, attributes tokens to the components using them
and writes the result as JSON.

Typical usage:
    extract-design-tokens --css styles/salesforce-lightning-design-system.css \
        --preset slds --output output/slds-design-tokens.json --csv output/slds-usage.csv
"""

import argparse
import json
import logging
import os
import re
import sys

import pandas as pd

from selector_analyzer import ParseOptions
from token_analyzer import (
    analyze,
    find_circular_dependencies,
    find_orphaned_tokens,
    generate_statistics,
)

# Option sets for well-known design systems
PRESETS = {
    'slds': {
        'selectorPrefixes': ['slds-'],
        'bemSeparators': ['__', '--', '_'],
        'tokenPrefixes': ['slds-', 'sds-'],
        'excludeClasses': ['slds-var-', 'slds-m-', 'slds-p-', 'slds-is-', 'slds-has-', r'slds-r\d', 'slds-no-'],
    },
    'carbon': {
        'selectorPrefixes': ['cds--'],
        'bemSeparators': ['__', '--'],
    },
}


class TokenFileError(Exception):
    """Reading CSS input or writing token output failed"""


def load_options(config_file):
    """Load parse options from a JSON config file"""
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to load config file {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_file} must contain a JSON object")
    return ParseOptions.from_dict(data)


def read_css_files(css_files):
    """Read and concatenate CSS files in the given order"""
    contents = []
    for css_file in css_files:
        try:
            with open(css_file, 'r', encoding='utf-8') as f:
                contents.append(f.read())
        except (OSError, UnicodeDecodeError) as e:
            raise TokenFileError(f"Failed to read CSS file {css_file}: {e}") from e
    return '\n'.join(contents)


def extract_from_content(css_content, options=None):
    """Extract design tokens from CSS content"""
    return analyze(css_content, options)


def extract_from_file(css_files, options=None):
    """Extract design tokens from one or more CSS files"""
    if isinstance(css_files, (str, os.PathLike)):
        css_files = [css_files]
    return extract_from_content(read_css_files(css_files), options)


def _ensure_parent_dir(path):
    parent = os.path.dirname(os.fspath(path))
    if parent:
        os.makedirs(parent, exist_ok=True)


def save_to_file(data, output_file):
    """Save extracted tokens (or any JSON-able report) to a JSON file"""
    try:
        _ensure_parent_dir(output_file)
        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        raise TokenFileError(f"Failed to save output file {output_file}: {e}") from e


def build_usage_table(tokens):
    """Flatten the token map into one row per token, most used first"""
    rows = []
    for token_name, token in tokens.items():
        used_in = token.get('usedIn', [])
        rows.append({
            'token': token_name,
            'type': token.get('type', ''),
            'value': token.get('value', ''),
            'refers_to': ', '.join(token.get('refersTo', [])),
            'used_in': ', '.join(used_in),
            'usage_count': len(used_in),
        })
    df = pd.DataFrame(rows, columns=['token', 'type', 'value', 'refers_to', 'used_in', 'usage_count'])
    return df.sort_values('usage_count', ascending=False, kind='stable')


def write_usage_csv(tokens, output_file):
    """Write the token usage table as CSV"""
    try:
        _ensure_parent_dir(output_file)
        build_usage_table(tokens).to_csv(output_file, index=False)
    except OSError as e:
        raise TokenFileError(f"Failed to save usage report {output_file}: {e}") from e


def build_options(args):
    """Combine preset, config file and command line flags into parse options"""
    settings = {}
    if args.preset:
        settings.update(ParseOptions.from_dict(PRESETS[args.preset]).to_dict())
    if args.config:
        settings.update(load_options(args.config).to_dict())

    flags = {
        'selector_prefixes': args.selector_prefix,
        'bem_separators': args.bem_separator,
        'exclude_classes': args.exclude_class,
        'token_prefixes': args.token_prefix,
        'exclude_tokens': args.exclude_token,
    }
    settings.update({name: values for name, values in flags.items() if values})

    options = ParseOptions.from_dict(settings)
    # Fail early on bad patterns rather than halfway through the analysis
    for pattern in options.exclude_classes + options.exclude_tokens:
        re.compile(pattern)
    return options


def print_statistics(stats):
    print("\n📊 Statistics:")
    print(f"Total tokens: {stats['totalTokens']}")
    print(f"Tokens with values: {stats['tokensWithValues']}")
    print(f"Tokens with references: {stats['tokensWithReferences']}")

    print("\nTokens by type:")
    for token_type, count in stats['tokensByType'].items():
        print(f"  {token_type}: {count}")

    if stats['mostUsedTokens']:
        print("\nMost used tokens:")
        for item in stats['mostUsedTokens'][:5]:
            print(f"  {item['token']}: used in {item['usageCount']} component(s)")


def print_warnings(cycles, orphaned):
    if cycles:
        print(f"\n⚠️ WARNING: Found {len(cycles)} circular token references")
        for cycle in cycles:
            print(f"  {' -> '.join(cycle)}")

    if orphaned:
        print(f"\n⚠️ WARNING: Found {len(orphaned)} tokens used but never declared")
        for token in orphaned[:20]:
            print(f"  {token}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Design Token Extractor for CSS stylesheets')
    parser.add_argument('--css', nargs='+', required=True, help='CSS files to analyze')
    parser.add_argument('--output', default='output/design-tokens.json', help='Output JSON token file')
    parser.add_argument('--preset', choices=sorted(PRESETS), help='Use the options of a known design system')
    parser.add_argument('--config', help='JSON file with parse options')
    parser.add_argument('--selector-prefix', nargs='+', help='Only class names with these prefixes name components')
    parser.add_argument('--bem-separator', nargs='+', help='BEM element/modifier separators')
    parser.add_argument('--exclude-class', nargs='+', help='Regular expressions for class names to ignore')
    parser.add_argument('--token-prefix', nargs='+', help='Only output tokens with these prefixes')
    parser.add_argument('--exclude-token', nargs='+', help='Regular expressions for token names to leave out')
    parser.add_argument('--csv', help='Also write a CSV usage report to this path')
    parser.add_argument('--stats', help='Also write the statistics as JSON to this path')
    parser.add_argument('--verbose', action='store_true', help='Show debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        options = build_options(args)
    except (ValueError, re.error) as e:
        parser.error(str(e))

    try:
        print(f"🔍 Analyzing CSS files: {', '.join(args.css)}")
        css_content = read_css_files(args.css)
        tokens = extract_from_content(css_content, options)

        print(f"💾 Saving tokens to: {args.output}")
        save_to_file(tokens, args.output)

        stats = generate_statistics(tokens)
        print_statistics(stats)
        print_warnings(find_circular_dependencies(css_content), find_orphaned_tokens(css_content))

        if args.csv:
            write_usage_csv(tokens, args.csv)
            print(f"\nUsage report saved to {args.csv}")
        if args.stats:
            save_to_file(stats, args.stats)
            print(f"Statistics saved to {args.stats}")
    except TokenFileError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    print("\n✅ Design token extraction complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
