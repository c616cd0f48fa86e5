"""
A caller-owned bracket session.

The session holds plain ``teams``/``results`` data. Every edit builds a fresh
topology from that data plus the edit, and only replaces the stored data once
the build succeeded.
"""
import copy
import logging
from typing import Any, Callable, Dict, List, Optional

from .codec import check_results, export_data, is_double_elimination, normalize_results
from .errors import BracketConfigError, BracketEditError
from .models import BracketKind, BracketOptions
from .topology import Topology, build_topology, rebuild

logger = logging.getLogger(__name__)


class BracketState:
    """Stored bracket data plus the options it is built with."""

    def __init__(self, teams: list, results: Optional[list] = None, options: Optional[BracketOptions] = None):
        self.teams = teams
        self.results = results
        self.options = options or BracketOptions()

    @classmethod
    def from_dict(cls, data: Dict[str, Any], options: Optional[BracketOptions] = None) -> 'BracketState':
        return cls(data.get('teams') or [[None, None]], data.get('results'), options)

    def to_dict(self) -> Dict[str, Any]:
        return {'teams': self.teams, 'results': self.results}

    @property
    def double_elimination(self) -> bool:
        return is_double_elimination(normalize_results(self.results))

    def __repr__(self):
        return f"BracketState(teams={self.teams!r}, results={self.results!r}, options={self.options!r})"


class BracketSession:
    """
    One tournament being edited.

    ``on_save(data, user_data)`` is called after every successful edit with
    the stored form of the bracket.
    """

    def __init__(self, state: BracketState, on_save: Optional[Callable[[Dict[str, Any], Any], None]] = None,
                 user_data: Any = None):
        self.on_save = on_save
        self.user_data = user_data
        self.topology = rebuild(state)
        self.state = BracketState(
            **export_data(self.topology), options=state.options)

    @property
    def options(self) -> BracketOptions:
        return self.state.options

    @property
    def pair_count(self) -> int:
        return len(self.state.teams)

    @property
    def double_elimination(self) -> bool:
        return self.topology.double_elimination

    def data(self) -> Dict[str, Any]:
        return self.state.to_dict()

    def view(self) -> Dict[str, Any]:
        return self.topology.view()

    def diagnostics(self) -> List[str]:
        return list(self.topology.diagnostics)

    def validate(self) -> List[str]:
        """Structural problems in the stored data, see ``check_results``."""
        return check_results(self.state.teams, self.state.results)

    def _commit(self, topology: Topology) -> Dict[str, Any]:
        data = export_data(topology)
        self.topology = topology
        self.state = BracketState(data['teams'], data['results'], topology.options)
        if self.on_save is not None:
            self.on_save(data, self.user_data)
        return data

    def _rebuild_with(self, teams=None, results=None, options=None) -> Topology:
        return build_topology(
            teams if teams is not None else self.state.teams,
            results if results is not None else self.state.results,
            options if options is not None else self.state.options,
        )

    def _require_editable(self):
        if not self.options.editable:
            raise BracketEditError("Bracket is not editable")

    def set_team(self, seed: int, name) -> Dict[str, Any]:
        """Put ``name`` at entry position ``seed``; an empty name removes the team."""
        self._require_editable()
        if self.options.disable_team_edit:
            raise BracketEditError("Team editing is disabled")
        if isinstance(seed, bool) or not isinstance(seed, int) or not 0 <= seed < 2 * self.pair_count:
            raise BracketEditError(f"Seed must be between 0 and {2 * self.pair_count - 1}, got {seed!r}")

        teams = copy.deepcopy(self.state.teams)
        teams[seed // 2][seed % 2] = name or None
        logger.info("Team at seed %d set to %r", seed, name or None)
        return self._commit(self._rebuild_with(teams=teams))

    def set_score(self, bracket, round_index: int, match_index: int, side: int, value) -> Dict[str, Any]:
        """Set the score of one side of a match. ``bracket`` is a BracketKind or its name."""
        self._require_editable()
        try:
            kind = BracketKind(bracket)
        except ValueError:
            raise BracketEditError(f"Unknown bracket {bracket!r}") from None

        topology = self._rebuild_with()
        try:
            topology.set_score(kind, round_index, match_index, side, value)
        except BracketConfigError as e:
            raise BracketEditError(str(e)) from e
        return self._commit(topology)

    def grow(self) -> Dict[str, Any]:
        """Double the number of team pairs, adding empty entries."""
        self._require_editable()
        teams = copy.deepcopy(self.state.teams)
        teams.extend([None, None] for _ in range(len(teams)))
        return self._commit(self._rebuild_with(teams=teams))

    def shrink(self) -> Dict[str, Any]:
        """Halve the number of team pairs, dropping the last half."""
        self._require_editable()
        minimum = 2 if self.double_elimination else 1
        if self.pair_count <= minimum:
            raise BracketEditError(f"Cannot shrink a bracket of {self.pair_count} team pair(s)")
        teams = copy.deepcopy(self.state.teams[:self.pair_count // 2])
        return self._commit(self._rebuild_with(teams=teams))

    def use_double_elimination(self) -> Dict[str, Any]:
        self._require_editable()
        if self.double_elimination:
            raise BracketEditError("Bracket is already double elimination")
        if self.pair_count < 2:
            raise BracketEditError("Double elimination needs at least 2 team pairs")
        results = copy.deepcopy(self.state.results) + [[], []]
        return self._commit(self._rebuild_with(results=results))

    def use_single_elimination(self) -> Dict[str, Any]:
        self._require_editable()
        if not self.double_elimination:
            raise BracketEditError("Bracket is already single elimination")
        results = copy.deepcopy(self.state.results[:1])
        return self._commit(self._rebuild_with(results=results))

    def update_options(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Merge ``changes`` into the current options and rebuild."""
        merged = self.options.to_dict()
        merged.update(changes)
        options = BracketOptions.from_dict(merged)
        return self._commit(self._rebuild_with(options=options))
