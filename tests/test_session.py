"""
Tests for the caller-owned bracket session.
"""
import random

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from brackets.errors import BracketConfigError, BracketEditError
from brackets.models import BracketKind, BracketOptions, Option
from brackets.session import BracketSession, BracketState


@pytest.fixture
def saved():
    """Collects on_save calls."""
    return []


@pytest.fixture
def make_session(saved):
    def _make(teams, results=None, user_data=None, **flags):
        state = BracketState(teams, results, BracketOptions(**flags))
        return BracketSession(state, on_save=lambda data, ud: saved.append((data, ud)), user_data=user_data)
    return _make


class TestBracketState:
    """Tests for BracketState."""

    def test_from_dict_defaults(self):
        """Missing teams give one empty pair."""
        state = BracketState.from_dict({})
        assert state.teams == [[None, None]]
        assert state.results is None
        assert state.options == BracketOptions()

    def test_double_elimination(self):
        """Type follows the number of result brackets."""
        assert BracketState([['A', 'B'], ['C', 'D']], [[], [], []]).double_elimination
        assert not BracketState([['A', 'B']]).double_elimination


class TestSessionEdits:
    """Tests for team and score edits."""

    def test_initial_state_is_normalized(self, make_session, saved):
        """Opening a session stores the full shape without saving."""
        session = make_session([['A', 'B']])
        assert session.data() == {'teams': [['A', 'B']], 'results': [[[[None, None]]]]}
        assert saved == []

    def test_set_team_saves(self, make_session, saved):
        """Each edit hands the stored form and user data to on_save."""
        session = make_session([[None, None], [None, None]], user_data={'id': 7})
        data = session.set_team(0, 'A')
        assert data['teams'] == [['A', None], [None, None]]
        assert saved == [(data, {'id': 7})]

    def test_set_team_empty_name(self, make_session):
        """An empty name removes the team."""
        session = make_session([['A', 'B']])
        session.set_team(1, '')
        assert session.data()['teams'] == [['A', None]]

    def test_new_team_gets_bye(self, make_session):
        """A team added next to an empty entry advances immediately."""
        session = make_session([[None, None], [None, None]])
        session.set_team(0, 'A')
        final = session.topology.winners.round(1).match(0)
        assert final.a.name == Option.of('A')
        assert session.view()['brackets'][0]['rounds'][0]['matches'][0]['teams'][0]['state'] == 'entry-default-win'

    def test_set_team_bad_seed(self, make_session, saved):
        """Seeds outside the bracket are rejected."""
        session = make_session([['A', 'B']])
        for seed in (-1, 2, '0', True):
            with pytest.raises(BracketEditError):
                session.set_team(seed, 'X')
        assert saved == []

    def test_team_edit_disabled(self, make_session):
        """Team edits are refused when disabled."""
        session = make_session([['A', 'B']], disable_team_edit=True)
        with pytest.raises(BracketEditError):
            session.set_team(0, 'X')

    def test_read_only(self, make_session):
        """A read-only session refuses every edit."""
        session = make_session([['A', 'B'], ['C', 'D']], editable=False)
        with pytest.raises(BracketEditError):
            session.set_team(0, 'X')
        with pytest.raises(BracketEditError):
            session.set_score('winners', 0, 0, 0, 1)
        with pytest.raises(BracketEditError):
            session.grow()

    def test_set_score(self, make_session, saved):
        """Scores are stored under the match."""
        session = make_session([['A', 'B'], ['C', 'D']])
        session.set_score('winners', 0, 1, 0, 4)
        data = session.set_score(BracketKind.WINNERS, 0, 1, 1, 2)
        assert data['results'][0][0][1] == [4, 2]
        assert len(saved) == 2
        assert session.topology.winners.round(1).match(0).b.name == Option.of('C')

    def test_failed_edit_keeps_state(self, make_session, saved):
        """A rejected edit leaves data, topology and callbacks untouched."""
        session = make_session([['A', 'B'], ['C', 'D']])
        before = session.data()
        topology = session.topology
        with pytest.raises(BracketEditError):
            session.set_score('winners', 1, 0, 0, 1)
        assert session.data() == before
        assert session.topology is topology
        assert saved == []

    def test_bad_score_is_edit_error(self, make_session):
        """Non-numeric scores are rejected as edits."""
        session = make_session([['A', 'B']])
        with pytest.raises(BracketEditError):
            session.set_score('winners', 0, 0, 0, 'x')

    def test_unknown_bracket(self, make_session):
        """Bracket names are checked."""
        session = make_session([['A', 'B']])
        with pytest.raises(BracketEditError, match='Unknown bracket'):
            session.set_score('consolation', 0, 0, 0, 1)

    def test_removing_team_drops_scores(self, make_session, saved):
        """Stale scores vanish when a match becomes a bye."""
        session = make_session([['A', 'B'], ['C', 'D']], [[[3, 1]]])
        data = session.set_team(1, None)
        assert data['results'][0][0][0] == [None, None]
        assert session.diagnostics()


class TestStructuralEdits:
    """Tests for resizing and switching bracket type."""

    def test_grow(self, make_session):
        """Growing doubles the pairs with empty entries."""
        session = make_session([['A', 'B']])
        data = session.grow()
        assert data['teams'] == [['A', 'B'], [None, None]]

    def test_shrink(self, make_session):
        """Shrinking keeps the first half."""
        session = make_session([['A', 'B'], ['C', 'D']])
        data = session.shrink()
        assert data['teams'] == [['A', 'B']]

    def test_shrink_minimum_single(self, make_session):
        """One pair cannot shrink."""
        with pytest.raises(BracketEditError):
            make_session([['A', 'B']]).shrink()

    def test_shrink_minimum_double(self, make_session):
        """Double elimination keeps at least two pairs."""
        session = make_session([['A', 'B'], ['C', 'D']], [[], [], []])
        with pytest.raises(BracketEditError):
            session.shrink()

    def test_switch_to_double(self, make_session):
        """Double elimination adds losers and finals brackets."""
        session = make_session([['A', 'B'], ['C', 'D']], [[[1, 0]]])
        data = session.use_double_elimination()
        assert len(data['results']) == 3
        assert data['results'][0][0][0] == [1, 0]
        assert session.double_elimination

    def test_switch_to_double_needs_two_pairs(self, make_session):
        """A single pair cannot go double."""
        with pytest.raises(BracketEditError):
            make_session([['A', 'B']]).use_double_elimination()

    def test_switch_twice(self, make_session):
        """Switching to the current type is an error."""
        with pytest.raises(BracketEditError):
            make_session([['A', 'B']]).use_single_elimination()

    def test_switch_to_single(self, make_session):
        """Single elimination keeps only the winners bracket."""
        session = make_session([['A', 'B'], ['C', 'D']], [[], [], []])
        data = session.use_single_elimination()
        assert len(data['results']) == 1
        assert not session.double_elimination

    def test_update_options(self, make_session):
        """Option changes rebuild the bracket."""
        session = make_session([['A', 'B'], ['C', 'D']])
        session.update_options({'skip_consolation_round': True})
        assert session.options.skip_consolation_round
        assert len(session.data()['results'][0][-1]) == 1

    def test_invalid_options_keep_state(self, make_session, saved):
        """Incompatible options are rejected."""
        session = make_session([['A', 'B'], ['C', 'D']])
        with pytest.raises(BracketConfigError):
            session.update_options({'skip_secondary_final': True})
        assert session.options == BracketOptions()
        assert saved == []

    def test_validate(self, make_session):
        """Session data passes its own checks."""
        session = make_session([['A', 'B'], ['C', 'D']], [[], [], []])
        session.set_score('winners', 0, 0, 0, 1)
        assert session.validate() == ['Bracket 0 round 0 match 0 has a score for only one team']


class TestBracketResetThroughSession:
    """The reset round across successive edits."""

    def test_reset_lifecycle(self, make_session):
        """Reset appears, decides, and disappears with the grand final result."""
        session = make_session([['A', 'B'], ['C', 'D']], [[], [], []])
        for args in [
            ('winners', 0, 0, 0, 1), ('winners', 0, 0, 1, 0),
            ('winners', 0, 1, 0, 1), ('winners', 0, 1, 1, 0),
            ('winners', 1, 0, 0, 1), ('winners', 1, 0, 1, 0),
            ('losers', 0, 0, 0, 1), ('losers', 0, 0, 1, 0),
            ('losers', 1, 0, 0, 0), ('losers', 1, 0, 1, 1),
            ('finals', 0, 0, 0, 0), ('finals', 0, 0, 1, 1),
        ]:
            session.set_score(*args)

        assert session.topology.finals.size() == 2
        assert len(session.data()['results'][2]) == 2
        assert session.view()['champion'] is None

        session.set_score('finals', 1, 0, 0, 3)
        session.set_score('finals', 1, 0, 1, 2)
        assert session.view()['champion'] == 'A'
        assert session.data()['results'][2][1] == [[3, 2]]

        session.set_score('finals', 0, 0, 0, 5)
        assert session.topology.finals.size() == 1
        assert len(session.data()['results'][2]) == 1
        assert session.view()['champion'] == 'A'


@pytest.mark.slow
class TestFinalsCeiling:
    """Random edit sequences never grow the finals past the reset round."""

    @pytest.mark.parametrize("seed", range(25))
    def test_random_edits(self, make_session, seed):
        """Finals stay at one or two rounds whatever the edit order."""
        rng = random.Random(seed)
        pair_count = rng.choice([2, 4])
        names = [f"T{i}" for i in range(2 * pair_count)]
        teams = [[names[2 * i], names[2 * i + 1]] for i in range(pair_count)]
        session = make_session(teams, [[], [], []])

        for _ in range(120):
            ready = [m for m in session.topology.matches() if m.is_ready()]
            if not ready or rng.random() < 0.1:
                seed_index = rng.randrange(2 * pair_count)
                session.set_team(seed_index, rng.choice(names + [None]))
            else:
                match = rng.choice(ready)
                session.set_score(match.round.bracket.kind, match.round.index, match.index,
                                  rng.randrange(2), rng.choice([None, 0, 1, 2, 3]))

            finals = session.topology.finals
            assert 1 <= finals.size() <= 2
            grand_final = finals.round(0).match(0)
            assert (finals.size() == 2) == (grand_final.winner() is grand_final.b)
