"""
Conversion between the stored ``teams``/``results`` arrays and the in-memory
bracket model.

Stored results are nested as brackets -> rounds -> matches -> match, where a
match is ``[score_a, score_b]`` or ``[score_a, score_b, user_data]``. Callers
may pass a shallower array (one bracket, one round, or a single match) and it
is wrapped until it reaches that depth.
"""
import math
from typing import Any, Dict, List

from .elimination import is_power_of_two
from .errors import BracketConfigError
from .models import NO_USER_DATA, Option, ResultObject

RESULTS_DEPTH = 4


def depth(a) -> int:
    """Nesting depth of ``a`` measured along first elements.

    An empty list counts as one level.
    """
    d = 0
    while isinstance(a, list):
        d += 1
        a = a[0] if a else None
    return d


def _is_blank(a) -> bool:
    return isinstance(a, list) and all(_is_blank(x) for x in a)


def wrap(a, d: int):
    """Enclose ``a`` in ``d`` single-element lists."""
    for _ in range(d):
        a = [a]
    return a


def normalize_results(results) -> list:
    """Bring caller results to canonical four-level nesting.

    ``None`` means a fresh single elimination bracket with no scores.
    """
    if results is None:
        return [[]]
    if not isinstance(results, list):
        raise BracketConfigError(f"Results must be a list, got {type(results).__name__}")
    # [[], [], []] is a fresh double elimination bracket, not three empty matches
    if len(results) in (2, 3) and all(_is_blank(b) for b in results):
        return [[] for _ in results]
    d = depth(results)
    if d > RESULTS_DEPTH:
        raise BracketConfigError(f"Results are nested {d} levels deep, at most {RESULTS_DEPTH} allowed")
    results = wrap(results, RESULTS_DEPTH - d)
    if len(results) > 3:
        raise BracketConfigError(f"Results can hold at most 3 brackets, got {len(results)}")
    return results


def decode_score(value) -> Option:
    if value is None:
        return Option.empty()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise BracketConfigError(f"Score must be a number, got {value!r}")
    if not math.isfinite(value):
        raise BracketConfigError(f"Score must be finite, got {value!r}")
    return Option.of(value)


def decode_match(data) -> ResultObject:
    if data is None:
        return ResultObject.empty()
    if not isinstance(data, list):
        raise BracketConfigError(f"Match result must be a list, got {data!r}")
    first = decode_score(data[0] if len(data) > 0 else None)
    second = decode_score(data[1] if len(data) > 1 else None)
    user_data = data[2] if len(data) > 2 else NO_USER_DATA
    return ResultObject(first, second, user_data)


def decode_results(results) -> List[List[List[ResultObject]]]:
    """Normalize and decode stored results into ResultObjects."""
    normalized = normalize_results(results)
    decoded = []
    for bracket in normalized:
        rounds = []
        for round_ in bracket or []:
            rounds.append([decode_match(m) for m in round_ or []])
        decoded.append(rounds)
    return decoded


def encode_match(result: ResultObject) -> list:
    data = [result.first.to_none(), result.second.to_none()]
    if result.has_user_data:
        data.append(result.user_data)
    return data


def encode_results(results: List[List[List[ResultObject]]]) -> list:
    return [[[encode_match(m) for m in round_] for round_ in bracket] for bracket in results]


def is_double_elimination(results: list) -> bool:
    """Stored results with more than one bracket describe double elimination."""
    return len(results) > 1


def decode_team(value) -> Option:
    if value is None or value == "":
        return Option.empty()
    return Option.of(value)


def decode_teams(teams) -> List[List[Option]]:
    """Decode team pairs; the pair count must be a power of two."""
    if not isinstance(teams, list) or not teams:
        raise BracketConfigError("Teams must be a non-empty list of pairs")
    if not is_power_of_two(len(teams)):
        raise BracketConfigError(f"Number of team pairs must be a power of two, got {len(teams)}")

    decoded = []
    for i, pair in enumerate(teams):
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise BracketConfigError(f"Team pair {i} must have exactly two entries, got {pair!r}")
        decoded.append([decode_team(pair[0]), decode_team(pair[1])])
    return decoded


def encode_teams(teams: List[List[Option]]) -> list:
    return [[a.to_none(), b.to_none()] for a, b in teams]


def export_data(topology) -> Dict[str, Any]:
    """Data as the caller stores it: absent teams and scores are None."""
    return {
        'teams': encode_teams(topology.teams),
        'results': encode_results(topology.results()),
    }


def _has_score(value) -> bool:
    return value is not None


def check_results(teams, results) -> List[str]:
    """
    Report structural problems in stored data without raising.

    Checks match size, one-sided scores, results beyond what the teams can
    fill, rounds growing instead of shrinking and a losers bracket longer
    than its winners bracket.
    """
    problems: List[str] = []
    pair_count = len(teams) if isinstance(teams, list) else 0

    try:
        normalized = normalize_results(results)
    except BracketConfigError as e:
        return [str(e)]

    bracket_rounds: List[int] = []
    for b, bracket in enumerate(normalized):
        bracket = bracket or []
        bracket_rounds.append(len(bracket))
        previous_len = None
        for r, round_ in enumerate(bracket):
            round_ = round_ or []
            if previous_len is not None and len(round_) > previous_len:
                problems.append(
                    f"Bracket {b} round {r} has {len(round_)} matches, more than the "
                    f"{previous_len} of the round before")
            previous_len = len(round_)
            for m, match in enumerate(round_):
                if not isinstance(match, list):
                    continue
                if len(match) < 2 or len(match) > 3:
                    problems.append(f"Bracket {b} round {r} match {m} has {len(match)} fields, expected 2 or 3")
                    continue
                if _has_score(match[0]) != _has_score(match[1]):
                    problems.append(f"Bracket {b} round {r} match {m} has a score for only one team")

        if b == 0 and bracket and len(bracket[0] or []) > pair_count:
            problems.append(
                f"First round has {len(bracket[0])} results but only {pair_count} team pairs")

    if len(bracket_rounds) > 1 and bracket_rounds[1] > 2 * bracket_rounds[0]:
        problems.append(
            f"Losers bracket has {bracket_rounds[1]} rounds, more than twice the "
            f"{bracket_rounds[0]} of the winners bracket")

    return problems
