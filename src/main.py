# Command line entry point: print a resolved bracket

import argparse
import logging
import os
import sys
import yaml
from brackets.elimination import seed_team_pairs
from brackets.errors import BracketConfigError
from brackets.models import BracketOptions
from brackets.topology import build_topology


def load_yaml(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        return yaml.safe_load(file) or {}


def load_bracket_data(args):
    """Stored bracket from file, or a fresh one seeded from a ranked team list."""
    if args.teams:
        names = load_yaml(args.teams)
        if not isinstance(names, list):
            raise BracketConfigError(f"{args.teams} must contain a list of team names")
        results = [[], [], []] if args.double else None
        return {'teams': seed_team_pairs(names), 'results': results}
    data = load_yaml(args.bracket)
    if not isinstance(data, dict):
        raise BracketConfigError(f"{args.bracket} must contain 'teams' and 'results'")
    return data


def format_slot(slot):
    name = slot['name'] if slot['name'] is not None else slot['state']
    score = slot['score'] if slot['score'] is not None else '--'
    marker = '*' if slot['outcome'] == 'win' else ' '
    return f"{marker}{name} ({score})"


def print_view(view):
    for bracket in view['brackets']:
        print(f"\n=== {bracket['kind'].title()} ===")
        for round_view in bracket['rounds']:
            print(f"\n{round_view['name']}")
            for i, match in enumerate(round_view['matches']):
                a, b = match['teams']
                suffix = f"  [{match['bubbles']}]" if match['bubbles'] else ''
                print(f"  {i}: {format_slot(a)} vs {format_slot(b)}{suffix}")

    print()
    if view['champion'] is not None:
        print(f"Champion: {view['champion']}")
        print(f"Runner-up: {view['runner_up']}")
    else:
        print("No champion yet.")


def main(argv=None):
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)

    parser = argparse.ArgumentParser(
        description='Resolve a tournament bracket and print every round'
    )
    parser.add_argument(
        'bracket',
        nargs='?',
        default=os.path.join(base_dir, 'data', 'bracket.yaml'),
        help='Bracket YAML with teams and results (default: data/bracket.yaml)'
    )
    parser.add_argument(
        '--settings',
        help='Settings YAML with bracket option flags'
    )
    parser.add_argument(
        '--teams',
        help='YAML list of team names, best first; builds a fresh seeded bracket instead'
    )
    parser.add_argument(
        '--double',
        action='store_true',
        help='With --teams, build a double elimination bracket'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log diagnostics while resolving'
    )

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        data = load_bracket_data(args)
        options = BracketOptions.from_dict(load_yaml(args.settings) if args.settings else None)
        topology = build_topology(data.get('teams'), data.get('results'), options)
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except BracketConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print_view(topology.view())
    for message in topology.diagnostics:
        print(f"Warning: {message}", file=sys.stderr)
    return 0


if __name__ == '__main__':
    sys.exit(main())
