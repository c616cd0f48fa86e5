"""
Single elimination bracket structure: matches, rounds, brackets and the
winner bracket layout.
"""
import math
from typing import List, Optional, Sequence, Tuple

from .errors import TopologyInvariantError
from .models import (
    BracketKind,
    Bubbles,
    Option,
    Order,
    ResultObject,
    SlotRef,
    TeamSlot,
)
from .resolution import match_loser, match_winner


def get_round_name(teams_in_round: int) -> str:
    """Get the name of a round based on number of teams."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2, at least 2)."""
    if num_teams <= 2:
        return 2
    return 2 ** math.ceil(math.log2(num_teams))


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_teams) - num_teams


def _generate_bracket_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 teams: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    """
    if bracket_size == 2:
        return [1, 2]

    half_size = bracket_size // 2
    upper_half = _generate_bracket_order(half_size)

    # Pair each upper seed with its complement
    lower_half = [bracket_size + 1 - seed for seed in upper_half]

    result = []
    for u, l in zip(upper_half, lower_half):
        result.extend([u, l])

    return result


def seed_team_pairs(team_names: Sequence[str]) -> List[List[Optional[str]]]:
    """
    Lay out teams ranked best-first into round-0 pairs using standard seeding.

    The pair count is always a power of two; missing positions are None and
    become BYEs for the highest seeds.
    """
    if not team_names:
        return [[None, None]]

    bracket_size = calculate_bracket_size(len(team_names))
    seed_to_team = {seed: name for seed, name in enumerate(team_names, start=1)}
    order = _generate_bracket_order(bracket_size)

    return [
        [seed_to_team.get(order[i]), seed_to_team.get(order[i + 1])]
        for i in range(0, bracket_size, 2)
    ]


class Match:
    """Two team slots and the stored result for them.

    ``index`` is the match's position within its round; wiring between
    rounds refers to matches by it.
    """

    def __init__(self, round_: 'Round', index: int, a: TeamSlot, b: TeamSlot,
                 result: ResultObject, bubbles: Optional[Bubbles] = None):
        self.round = round_
        self.index = index
        self.a = a
        self.b = b
        self.bubbles = bubbles
        self.user_data = result.user_data
        a.score = result.first
        b.score = result.second

    @property
    def location(self) -> str:
        return f"{self.round.bracket.kind.value} round {self.round.index} match {self.index}"

    def first(self) -> TeamSlot:
        return self.a

    def second(self) -> TeamSlot:
        return self.b

    def winner(self) -> TeamSlot:
        return match_winner(self)

    def loser(self) -> TeamSlot:
        return match_loser(self)

    def is_ready(self) -> bool:
        """Both teams are known, so scores can be entered."""
        return not self.a.name.is_empty() and not self.b.name.is_empty()

    def is_decided(self) -> bool:
        return not self.winner().name.is_empty()

    def refresh(self):
        """Pull current occupants from the sources and drop scores that cannot stand."""
        for slot in (self.a, self.b):
            source = slot.source()
            slot.name = source.name
            slot.seed = source.seed

        has_score = not self.a.score.is_empty() or not self.b.score.is_empty()
        if has_score and not self.is_ready():
            self.round.bracket.arena.report(
                f"Error in score data at {self.location}: "
                f"{self.a.name.to_none()}: {self.a.score.to_none()}, "
                f"{self.b.name.to_none()}: {self.b.score.to_none()}"
            )
            self.a.score = Option.empty()
            self.b.score = Option.empty()

    def results(self) -> ResultObject:
        """Result to persist; a match with a BYE on either side never keeps scores."""
        if not self.is_ready():
            return ResultObject(Option.empty(), Option.empty(), self.user_data)
        return ResultObject(self.a.score, self.b.score, self.user_data)

    def __repr__(self):
        return f"Match({self.location}, a={self.a.name.to_none()!r}, b={self.b.name.to_none()!r})"


class Round:
    """Ordered matches at one depth of a bracket."""

    def __init__(self, bracket: 'Bracket', index: int, previous: Optional['Round'],
                 results: Optional[List[ResultObject]] = None):
        self.bracket = bracket
        self.index = index
        self.previous = previous
        self.stored_results = results or []
        self.matches: List[Match] = []

    def add_match(self, sources: Optional[Tuple[SlotRef, SlotRef]] = None,
                  bubbles: Optional[Bubbles] = None) -> Match:
        """Append a match fed by ``sources``.

        Without explicit sources the match takes the winners of matches
        ``2m`` and ``2m + 1`` of the previous round of the same bracket.
        """
        match_index = len(self.matches)
        if sources is None:
            if self.previous is None:
                raise TopologyInvariantError(
                    f"First round of {self.bracket.kind.value} bracket needs explicit sources")
            sources = (
                SlotRef.winner_of(self.bracket.kind, self.index - 1, match_index * 2),
                SlotRef.winner_of(self.bracket.kind, self.index - 1, match_index * 2 + 1),
            )

        arena = self.bracket.arena
        a = TeamSlot(sources[0], arena, order=Option.of(Order.FIRST))
        b = TeamSlot(sources[1], arena, order=Option.of(Order.SECOND))
        TeamSlot.pair(a, b)

        if match_index < len(self.stored_results):
            result = self.stored_results[match_index]
        else:
            result = ResultObject.empty()

        match = Match(self, match_index, a, b, result, bubbles)
        self.matches.append(match)
        return match

    def match(self, index: int) -> Match:
        return self.matches[index]

    def prev(self) -> Optional['Round']:
        return self.previous

    def size(self) -> int:
        return len(self.matches)

    def results(self) -> List[ResultObject]:
        return [m.results() for m in self.matches]

    def __repr__(self):
        return f"Round({self.bracket.kind.value}, index={self.index}, matches={len(self.matches)})"


class Bracket:
    """Ordered rounds forming one elimination ladder."""

    def __init__(self, arena, kind: BracketKind, results: Optional[List[List[ResultObject]]] = None,
                 max_rounds: Optional[int] = None):
        self.arena = arena
        self.kind = kind
        self.stored_results = results or []
        self.max_rounds = max_rounds
        self.rounds: List[Round] = []

    def add_round(self) -> Round:
        index = len(self.rounds)
        if self.max_rounds is not None and index >= self.max_rounds:
            raise TopologyInvariantError(
                f"{self.kind.value} bracket cannot have more than {self.max_rounds} rounds")
        previous = self.rounds[-1] if self.rounds else None
        # Stored results may be shorter than the structure
        results = self.stored_results[index] if index < len(self.stored_results) else []
        round_ = Round(self, index, previous, results)
        self.rounds.append(round_)
        return round_

    def drop_round(self):
        self.rounds.pop()

    def round(self, index: int) -> Round:
        return self.rounds[index]

    def size(self) -> int:
        return len(self.rounds)

    def final(self) -> Match:
        return self.rounds[-1].match(0)

    def winner(self) -> TeamSlot:
        return self.final().winner()

    def loser(self) -> TeamSlot:
        return self.final().loser()

    def matches(self):
        for round_ in self.rounds:
            yield from round_.matches

    def results(self) -> List[List[ResultObject]]:
        return [r.results() for r in self.rounds]

    def __repr__(self):
        return f"Bracket({self.kind.value}, rounds={len(self.rounds)})"


def _entry_sources(pair: int) -> Tuple[SlotRef, SlotRef]:
    return SlotRef.entry(pair, Order.FIRST), SlotRef.entry(pair, Order.SECOND)


def calculate_winners_rounds(pair_count: int) -> int:
    """Winner bracket rounds for ``pair_count`` round-0 matches: log2(2N)."""
    return int(math.log2(pair_count * 2))


def prepare_winners(topology, single_elimination: bool, options):
    """
    Lay out the winner bracket.

    Round 0 has one match per team pair; each later round halves. In single
    elimination the last round's first match is the final and a consolation
    match between the semifinal losers is appended after it. In double
    elimination the final feeds the grand final, unless the comeback path is
    disabled, in which case it is the tournament final.
    """
    winners = topology.winners
    pair_count = topology.pair_count
    round_count = calculate_winners_rounds(pair_count)
    skip_comeback = options.skip_grand_final_comeback and not single_elimination
    is_final_bracket = single_elimination or skip_comeback

    match_count = pair_count
    round_ = None
    for r in range(round_count):
        round_ = winners.add_round()
        is_last_round = r == round_count - 1
        for m in range(match_count):
            sources = _entry_sources(m) if r == 0 else None
            bubbles = Bubbles.WINNER if is_last_round and is_final_bracket else None
            round_.add_match(sources, bubbles)
        match_count //= 2

    if single_elimination and pair_count > 1 and not options.skip_consolation_round:
        semifinal = winners.final().round.prev()
        round_.add_match(
            (
                SlotRef.loser_of(BracketKind.WINNERS, semifinal.index, 0),
                SlotRef.loser_of(BracketKind.WINNERS, semifinal.index, 1),
            ),
            Bubbles.CONSOLATION,
        )
