"""
Match resolution: BYE/TBD classification of empty slots and winner/loser
determination from scores.
"""
from typing import Optional, Tuple

from .errors import TopologyInvariantError
from .models import BranchType, EntryState, Option, TeamSlot


def _depth_limit(slot: TeamSlot) -> int:
    if slot.arena is None:
        return 0
    return slot.arena.max_depth


def empty_branch(slot: TeamSlot, _depth: int = 0) -> BranchType:
    """Classify what will eventually occupy ``slot`` by walking its ancestry.

    A named slot is a BYE when its sibling is empty (the lone team advances
    without playing) and TBD otherwise. An empty slot inherits TBD from its
    source; an entry slot with no team yields END, which one level up means
    the branch is empty for good.
    """
    if _depth > _depth_limit(slot) + 2:
        raise TopologyInvariantError(f"Slot ancestry deeper than the bracket allows: {slot!r}")

    if not slot.name.is_empty():
        if slot.sibling().name.is_empty():
            # Lone team propagates on its own; a loser-bracket slot fed by this
            # match will never receive anyone.
            return BranchType.BYE
        return BranchType.TBD

    source = slot.source()
    if source is None:
        return BranchType.END

    source_type = empty_branch(source, _depth + 1)
    if source_type is BranchType.TBD:
        return BranchType.TBD
    if source_type is BranchType.END:
        return BranchType.BYE

    if empty_branch(source.sibling(), _depth + 1) is BranchType.TBD:
        return BranchType.TBD
    return BranchType.BYE


def teams_in_result_order(match) -> Optional[Tuple[TeamSlot, TeamSlot]]:
    """Return ``(winner, loser)`` slots of ``match`` or None when undecided.

    Precedence: a lone team against a genuine BYE wins outright; a lone team
    against a pending (TBD) branch waits; otherwise the strictly greater score
    wins and a tie stays unresolved.
    """
    a, b = match.a, match.b
    a_empty = a.name.is_empty()
    b_empty = b.name.is_empty()

    if b_empty and not a_empty:
        if empty_branch(b) is BranchType.BYE:
            return a, b
        return None
    if a_empty and not b_empty:
        if empty_branch(a) is BranchType.BYE:
            return b, a
        return None
    if not a.score.is_empty() and not b.score.is_empty():
        if a.score.get() > b.score.get():
            return a, b
        if a.score.get() < b.score.get():
            return b, a
    return None


def match_winner(match) -> TeamSlot:
    """Winning slot, or an empty placeholder rooted at the first slot's source."""
    ordered = teams_in_result_order(match)
    if ordered:
        return ordered[0]
    return TeamSlot.placeholder(match.a.source_ref, match.a.arena, match.b)


def match_loser(match) -> TeamSlot:
    """Losing slot, or an empty placeholder rooted at the second slot's source."""
    ordered = teams_in_result_order(match)
    if ordered:
        return ordered[1]
    return TeamSlot.placeholder(match.b.source_ref, match.b.arena, match.a)


def entry_state(slot: TeamSlot, opponent: TeamSlot, score: Option) -> EntryState:
    """State of ``slot`` as the renderer should show it.

    ``score`` is the score as displayed, i.e. already blanked when the match
    is not ready.
    """
    if not slot.name.is_empty():
        if not score.is_empty():
            return EntryState.ENTRY_COMPLETE
        if empty_branch(opponent) is BranchType.BYE:
            return EntryState.ENTRY_DEFAULT_WIN
        return EntryState.ENTRY_NO_SCORE

    branch = empty_branch(slot)
    if branch is BranchType.BYE:
        return EntryState.EMPTY_BYE
    if branch is BranchType.TBD:
        return EntryState.EMPTY_TBD
    raise TopologyInvariantError(f"Unexpected branch type {branch}")
