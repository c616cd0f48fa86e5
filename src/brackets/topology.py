"""
Bracket topology: builds the winners, losers and finals brackets for a set of
team pairs and stored results, resolves every match, and renders the result
for display.

A topology is rebuilt from scratch for every edit; callers keep the plain
``teams``/``results`` data and call ``build_topology`` again.
"""
import logging
from typing import Any, Dict, Iterator, List, Optional

from .codec import decode_results, decode_score, decode_teams, is_double_elimination
from .double_elimination import (
    MAX_FINALS_ROUNDS,
    get_finals_round_name,
    get_losers_round_name,
    get_winners_round_name,
    prepare_finals,
    prepare_losers,
    settle_finals,
)
from .elimination import Bracket, Match, get_round_name, prepare_winners
from .errors import BracketEditError, TopologyInvariantError
from .models import NO_USER_DATA, BracketKind, BracketOptions, Option, Order, SlotRef, TeamSlot
from .resolution import entry_state, teams_in_result_order

logger = logging.getLogger(__name__)


class Topology:
    """All brackets of one tournament plus the team entries feeding them.

    Slots find their occupants through ``resolve_ref``, so the topology is
    the only object holding references between matches.
    """

    def __init__(self, teams: List[List[Option]], results, options: BracketOptions,
                 double_elimination: bool):
        self.teams = teams
        self.pair_count = len(teams)
        self.options = options
        self.double_elimination = double_elimination
        self.diagnostics: List[str] = []

        self.leaves = []
        for m, (first, second) in enumerate(teams):
            a = TeamSlot(None, self, name=first, order=Option.of(Order.FIRST), seed=Option.of(2 * m))
            b = TeamSlot(None, self, name=second, order=Option.of(Order.SECOND), seed=Option.of(2 * m + 1))
            TeamSlot.pair(a, b)
            self.leaves.append((a, b))

        results = list(results) + [[] for _ in range(3 - len(results))]
        self.winners = Bracket(self, BracketKind.WINNERS, results[0])
        self.losers = None
        self.finals = None
        if double_elimination:
            self.losers = Bracket(self, BracketKind.LOSERS, results[1])
            if not options.skip_grand_final_comeback:
                self.finals = Bracket(self, BracketKind.FINALS, results[2], max_rounds=MAX_FINALS_ROUNDS)

    @property
    def single_elimination(self) -> bool:
        return not self.double_elimination

    @property
    def max_depth(self) -> int:
        """Longest possible ancestry chain: one step per round built."""
        return sum(b.size() for b in self.brackets())

    def brackets(self) -> List[Bracket]:
        return [b for b in (self.winners, self.losers, self.finals) if b is not None]

    def bracket(self, kind: BracketKind) -> Optional[Bracket]:
        return {
            BracketKind.WINNERS: self.winners,
            BracketKind.LOSERS: self.losers,
            BracketKind.FINALS: self.finals,
        }[kind]

    def matches(self) -> Iterator[Match]:
        for bracket in self.brackets():
            yield from bracket.matches()

    def report(self, message: str):
        logger.warning(message)
        self.diagnostics.append(message)

    def resolve_ref(self, ref: SlotRef) -> TeamSlot:
        """Current occupant of whatever ``ref`` points at."""
        try:
            if ref.kind == SlotRef.ENTRY:
                return self.leaves[ref.pair][ref.order.value]
            match = self.bracket(ref.bracket).round(ref.round_index).match(ref.match_index)
        except (IndexError, AttributeError) as e:
            raise TopologyInvariantError(f"Dangling slot reference {ref!r}") from e

        if ref.kind == SlotRef.WINNER:
            return match.winner()
        if ref.kind == SlotRef.LOSER:
            return match.loser()
        return ref.order.pick(match.a, match.b)

    def resolve(self):
        """Refresh every match in build order, then add or retract the bracket reset."""
        for match in self.matches():
            match.refresh()
        if self.finals is not None:
            settle_finals(self, self.options)

    def match(self, kind: BracketKind, round_index: int, match_index: int) -> Match:
        bracket = self.bracket(kind)
        if bracket is None:
            raise BracketEditError(f"This tournament has no {kind.value} bracket")
        if not all(isinstance(i, int) and not isinstance(i, bool) for i in (round_index, match_index)):
            raise BracketEditError(f"Round and match must be integers, got {round_index!r} and {match_index!r}")
        if not 0 <= round_index < bracket.size():
            raise BracketEditError(f"No round {round_index} in {kind.value} bracket")
        round_ = bracket.round(round_index)
        if not 0 <= match_index < round_.size():
            raise BracketEditError(f"No match {match_index} in {kind.value} round {round_index}")
        return round_.match(match_index)

    def set_score(self, kind: BracketKind, round_index: int, match_index: int, side: int, value):
        """Set one side's score and resolve again. ``None`` clears it."""
        match = self.match(kind, round_index, match_index)
        if side not in (0, 1):
            raise BracketEditError(f"Side must be 0 or 1, got {side!r}")
        if not match.is_ready():
            raise BracketEditError(f"Cannot score {match.location}: both teams must be known")

        score = decode_score(value)
        slot = match.a if side == 0 else match.b
        slot.score = score
        self.resolve()

    def final_match(self) -> Match:
        """Match deciding first and second place."""
        if self.finals is not None:
            return self.finals.final()
        return self.winners.final()

    def champion(self) -> Optional[Any]:
        return self.final_match().winner().name.to_none()

    def runner_up(self) -> Optional[Any]:
        return self.final_match().loser().name.to_none()

    def results(self) -> list:
        """ResultObjects for every bracket in stored order."""
        if self.single_elimination:
            return [self.winners.results()]
        finals = self.finals.results() if self.finals is not None else []
        return [self.winners.results(), self.losers.results(), finals]

    def round_name(self, kind: BracketKind, round_index: int) -> str:
        if kind is BracketKind.WINNERS:
            teams_in_round = 2 * (self.pair_count >> round_index)
            if self.single_elimination:
                return get_round_name(teams_in_round)
            return get_winners_round_name(teams_in_round)
        if kind is BracketKind.LOSERS:
            return get_losers_round_name(round_index, self.losers.size())
        return get_finals_round_name(round_index)

    def _slot_view(self, match: Match, slot: TeamSlot, opponent: TeamSlot) -> Dict[str, Any]:
        ready = match.is_ready()
        score = slot.score if ready else Option.empty()

        if slot.name.is_empty():
            outcome = 'na'
        else:
            ordered = teams_in_result_order(match)
            if ordered is None:
                outcome = None
            else:
                outcome = 'win' if ordered[0] is slot else 'lose'

        is_entry_slot = match.round.bracket.kind is BracketKind.WINNERS and match.round.index == 0
        editable = self.options.editable
        return {
            'name': slot.name.to_none(),
            'score': score.to_none(),
            'seed': slot.seed.to_none(),
            'state': entry_state(slot, opponent, score).value,
            'outcome': outcome,
            'editable_name': (editable and not self.options.disable_team_edit
                              and (not slot.name.is_empty() or is_entry_slot)),
            'editable_score': editable and ready,
        }

    def _match_view(self, match: Match) -> Dict[str, Any]:
        return {
            'bubbles': match.bubbles.value if match.bubbles else None,
            'decided': match.is_decided(),
            'user_data': match.user_data if match.user_data is not NO_USER_DATA else None,
            'teams': [
                self._slot_view(match, match.a, match.b),
                self._slot_view(match, match.b, match.a),
            ],
        }

    def view(self) -> Dict[str, Any]:
        """Everything a renderer needs, as plain data."""
        return {
            'type': 'double' if self.double_elimination else 'single',
            'brackets': [
                {
                    'kind': bracket.kind.value,
                    'rounds': [
                        {
                            'name': self.round_name(bracket.kind, round_.index),
                            'matches': [self._match_view(m) for m in round_.matches],
                        }
                        for round_ in bracket.rounds
                    ],
                }
                for bracket in self.brackets()
            ],
            'champion': self.champion(),
            'runner_up': self.runner_up(),
        }


def build_topology(teams, results=None, options: Optional[BracketOptions] = None) -> Topology:
    """
    Build and resolve a topology from stored data.

    ``teams`` is a list of ``[team, team]`` pairs whose length is a power of
    two; ``results`` uses the nested stored shape and decides between single
    (one bracket) and double (three brackets) elimination.
    """
    options = options or BracketOptions()
    decoded_teams = decode_teams(teams)
    decoded_results = decode_results(results)
    double_elimination = is_double_elimination(decoded_results)
    options.validate(double_elimination, len(decoded_teams))

    topology = Topology(decoded_teams, decoded_results, options, double_elimination)
    prepare_winners(topology, not double_elimination, options)
    if double_elimination:
        prepare_losers(topology, options)
        if topology.finals is not None:
            prepare_finals(topology, options)

    topology.resolve()
    logger.debug("Built %s elimination topology for %d team pairs",
                 'double' if double_elimination else 'single', topology.pair_count)
    return topology


def rebuild(state) -> Topology:
    """Fresh topology for a state holding ``teams``, ``results`` and ``options``."""
    return build_topology(state.teams, state.results, state.options)
