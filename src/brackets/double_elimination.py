"""
Double elimination bracket layout.

In double elimination:
- Teams must lose twice to be eliminated
- Winners Bracket: Teams that haven't lost yet
- Losers Bracket: Teams that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: If losers bracket winner wins Grand Final, a final match decides the champion
"""
import logging
import math

from .errors import TopologyInvariantError
from .models import BracketKind, Bubbles, Order, SlotRef

logger = logging.getLogger(__name__)

# Grand final plus the optional bracket reset
MAX_FINALS_ROUNDS = 2


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (0-indexed)."""
    rounds_from_end = total_losers_rounds - round_num - 1
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num + 1}"


def get_winners_round_name(teams_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if teams_in_round == 2:
        return "Winners Final"
    elif teams_in_round == 4:
        return "Winners Semifinal"
    elif teams_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {teams_in_round}"


def get_finals_round_name(round_num: int) -> str:
    return "Grand Final" if round_num == 0 else "Bracket Reset"


def calculate_losers_major_rounds(pair_count: int) -> int:
    if pair_count < 2:
        return 0
    return int(math.log2(pair_count))


def calculate_losers_bracket_rounds(pair_count: int, skip_grand_final_comeback: bool = False) -> int:
    """
    Calculate number of rounds in losers bracket.

    Every major round is split in two: an advancement round among losers
    bracket teams and a drop-in round against the losers of the next winners
    round. Without a comeback path the last drop-in round is not played.
    """
    rounds = 2 * calculate_losers_major_rounds(pair_count)
    if skip_grand_final_comeback and rounds:
        rounds -= 1
    return rounds


def _drop_in_sources(losers_round: int, winners_round: int, match_count: int, m: int, major: int):
    # Reverse every second drop-in so rematches happen as late as possible
    winner_match = match_count - m - 1 if major % 2 == 0 else m
    return (
        SlotRef.winner_of(BracketKind.LOSERS, losers_round, m),
        SlotRef.loser_of(BracketKind.WINNERS, winners_round, winner_match),
    )


def prepare_losers(topology, options):
    """Lay out the losers bracket from an already built winners bracket."""
    losers = topology.losers
    pair_count = topology.pair_count
    major_rounds = calculate_losers_major_rounds(pair_count)
    match_count = pair_count // 2

    for r in range(major_rounds):
        is_last_major = r == major_rounds - 1
        sub_rounds = 1 if options.skip_grand_final_comeback and is_last_major else 2
        for n in range(sub_rounds):
            round_ = losers.add_round()
            for m in range(match_count):
                if n == 0 and r == 0:
                    sources = (
                        SlotRef.loser_of(BracketKind.WINNERS, 0, m * 2),
                        SlotRef.loser_of(BracketKind.WINNERS, 0, m * 2 + 1),
                    )
                elif n == 0:
                    sources = None
                else:
                    sources = _drop_in_sources(r * 2, r + 1, match_count, m, r)

                bubbles = None
                if is_last_major and options.skip_grand_final_comeback:
                    bubbles = Bubbles.CONSOLATION
                round_.add_match(sources, bubbles)
        match_count //= 2


def prepare_finals(topology, options):
    """Add the grand final, fed by both bracket champions, and its consolation match."""
    winners = topology.winners
    losers = topology.losers
    round_ = topology.finals.add_round()

    round_.add_match(
        (
            SlotRef.winner_of(BracketKind.WINNERS, winners.size() - 1, 0),
            SlotRef.winner_of(BracketKind.LOSERS, losers.size() - 1, 0),
        ),
        Bubbles.WINNER,
    )

    if not options.skip_consolation_round:
        losers_final = losers.size() - 1
        round_.add_match(
            (
                SlotRef.loser_of(BracketKind.LOSERS, losers_final - 1, 0),
                SlotRef.loser_of(BracketKind.LOSERS, losers_final, 0),
            ),
            Bubbles.CONSOLATION,
        )


def settle_finals(topology, options):
    """
    Add or retract the bracket reset after a resolve pass.

    The reset exists only while the losers bracket champion (second slot of
    the grand final) has won the first grand final match.
    """
    finals = topology.finals
    if finals.size() > MAX_FINALS_ROUNDS:
        raise TopologyInvariantError(f"Unexpected number of final rounds: {finals.size()}")

    grand_final = finals.round(0).match(0)
    comeback = not options.skip_secondary_final and grand_final.winner() is grand_final.b

    if comeback:
        grand_final.bubbles = None
        if finals.size() == 1:
            round_ = finals.add_round()
            # Same teams, winners bracket champion stays on top
            rematch = round_.add_match(
                (
                    SlotRef.slot_of(BracketKind.FINALS, 0, 0, Order.FIRST),
                    SlotRef.slot_of(BracketKind.FINALS, 0, 0, Order.SECOND),
                ),
                Bubbles.WINNER,
            )
            rematch.refresh()
            logger.debug("Bracket reset added: %s", rematch)
    else:
        grand_final.bubbles = Bubbles.WINNER
        if finals.size() == MAX_FINALS_ROUNDS:
            finals.drop_round()
            logger.debug("Bracket reset retracted")
