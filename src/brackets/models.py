"""
Data model for bracket topology: team slots, slot references, stored results
and bracket options.
"""
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .errors import BracketConfigError, TopologyInvariantError


class Option:
    """A value that is either present or absent.

    Used instead of ``None`` for team names and scores so that "no team" is
    always checked explicitly.
    """

    def __init__(self, value=None):
        if isinstance(value, Option):
            raise TypeError("Trying to wrap Option into an Option")
        self._value = value

    @classmethod
    def of(cls, value) -> 'Option':
        return cls(value)

    @classmethod
    def empty(cls) -> 'Option':
        return cls(None)

    def is_empty(self) -> bool:
        return self._value is None

    def get(self):
        if self._value is None:
            raise ValueError("Trying to get() empty Option")
        return self._value

    def or_else(self, default):
        return default if self._value is None else self._value

    def map(self, f: Callable) -> 'Option':
        return Option.empty() if self._value is None else Option(f(self._value))

    def to_none(self):
        return self._value

    def __eq__(self, other):
        if not isinstance(other, Option):
            return NotImplemented
        return self._value == other._value

    def __hash__(self):
        return hash(self._value)

    def __repr__(self):
        if self._value is None:
            return "Option.empty()"
        return f"Option.of({self._value!r})"


class BranchType(Enum):
    """Classification of an empty slot's ancestry."""
    TBD = 'tbd'
    BYE = 'bye'
    END = 'end'  # round-0 entry, nothing above it


class Order(Enum):
    FIRST = 0
    SECOND = 1

    def pick(self, first, second):
        return first if self is Order.FIRST else second


class Bubbles(Enum):
    """Placement markers the renderer attaches to a deciding match."""
    WINNER = 'winner'              # 1st / 2nd
    CONSOLATION = 'consolation'    # 3rd / 4th


class EntryState(Enum):
    """Renderer-facing state of one team slot."""
    EMPTY_BYE = 'empty-bye'
    EMPTY_TBD = 'empty-tbd'
    ENTRY_NO_SCORE = 'entry-no-score'
    ENTRY_DEFAULT_WIN = 'entry-default-win'
    ENTRY_COMPLETE = 'entry-complete'


class BracketKind(Enum):
    WINNERS = 'winners'
    LOSERS = 'losers'
    FINALS = 'finals'

    @property
    def position(self) -> int:
        """Index of this bracket in the stored results array."""
        return _BRACKET_POSITIONS[self]


_BRACKET_POSITIONS = {
    BracketKind.WINNERS: 0,
    BracketKind.LOSERS: 1,
    BracketKind.FINALS: 2,
}


class SlotRef:
    """Address of whatever currently occupies a slot.

    ``entry`` points at a caller-supplied team entry; ``winner``/``loser``
    point at the outcome of another match; ``slot`` points at one side of
    another match as-is (used by the bracket reset rematch).
    """
    ENTRY = 'entry'
    WINNER = 'winner'
    LOSER = 'loser'
    SLOT = 'slot'

    def __init__(self, kind: str, bracket: Optional[BracketKind] = None, round_index: Optional[int] = None,
                 match_index: Optional[int] = None, pair: Optional[int] = None, order: Optional[Order] = None):
        self.kind = kind
        self.bracket = bracket
        self.round_index = round_index
        self.match_index = match_index
        self.pair = pair
        self.order = order

    @classmethod
    def entry(cls, pair: int, order: Order) -> 'SlotRef':
        return cls(cls.ENTRY, pair=pair, order=order)

    @classmethod
    def winner_of(cls, bracket: BracketKind, round_index: int, match_index: int) -> 'SlotRef':
        return cls(cls.WINNER, bracket, round_index, match_index)

    @classmethod
    def loser_of(cls, bracket: BracketKind, round_index: int, match_index: int) -> 'SlotRef':
        return cls(cls.LOSER, bracket, round_index, match_index)

    @classmethod
    def slot_of(cls, bracket: BracketKind, round_index: int, match_index: int, order: Order) -> 'SlotRef':
        return cls(cls.SLOT, bracket, round_index, match_index, order=order)

    def _key(self):
        return (self.kind, self.bracket, self.round_index, self.match_index, self.pair, self.order)

    def __eq__(self, other):
        if not isinstance(other, SlotRef):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        if self.kind == self.ENTRY:
            return f"SlotRef(entry, pair={self.pair}, order={self.order.name})"
        where = f"{self.bracket.value}[{self.round_index}][{self.match_index}]"
        if self.kind == self.SLOT:
            return f"SlotRef(slot, {where}, order={self.order.name})"
        return f"SlotRef({self.kind}, {where})"


class TeamSlot:
    """One side of a match, or a caller-supplied team entry.

    Entry slots have ``source_ref=None``; they are the end of every ancestry
    chain. All other slots look their occupant up through ``arena``.
    """

    def __init__(self, source_ref: Optional[SlotRef], arena=None, name: Optional[Option] = None,
                 order: Optional[Option] = None, seed: Optional[Option] = None,
                 score: Optional[Option] = None):
        self.source_ref = source_ref
        self.arena = arena
        self.name = name if name is not None else Option.empty()
        self.order = order if order is not None else Option.empty()
        self.seed = seed if seed is not None else Option.empty()
        self.score = score if score is not None else Option.empty()
        # Both slots of a pair exist before either can point at the other
        self._sibling = None

    @classmethod
    def placeholder(cls, source_ref: Optional[SlotRef], arena, sibling: 'TeamSlot') -> 'TeamSlot':
        """Empty slot standing in for an undecided winner or loser."""
        slot = cls(source_ref, arena)
        slot._sibling = sibling
        return slot

    @staticmethod
    def pair(a: 'TeamSlot', b: 'TeamSlot'):
        a._sibling = b
        b._sibling = a

    def sibling(self) -> 'TeamSlot':
        if self._sibling is None:
            raise TopologyInvariantError("No sibling assigned")
        return self._sibling

    def source(self) -> Optional['TeamSlot']:
        """Slot this one takes its occupant from, or None for an entry slot."""
        if self.source_ref is None:
            return None
        return self.arena.resolve_ref(self.source_ref)

    def __repr__(self):
        return (f"TeamSlot(name={self.name.to_none()!r}, seed={self.seed.to_none()}, "
                f"score={self.score.to_none()}, source={self.source_ref})")


class _NoUserData:
    def __repr__(self):
        return "NO_USER_DATA"

    def __bool__(self):
        return False


NO_USER_DATA = _NoUserData()


class ResultObject:
    """Stored outcome of one match: two scores and optional caller metadata."""

    def __init__(self, first: Optional[Option] = None, second: Optional[Option] = None, user_data=NO_USER_DATA):
        self.first = first if first is not None else Option.empty()
        self.second = second if second is not None else Option.empty()
        self.user_data = user_data

    @classmethod
    def empty(cls) -> 'ResultObject':
        return cls()

    @property
    def has_user_data(self) -> bool:
        return self.user_data is not NO_USER_DATA

    def __eq__(self, other):
        if not isinstance(other, ResultObject):
            return NotImplemented
        return (self.first == other.first and self.second == other.second
                and self.has_user_data == other.has_user_data
                and (not self.has_user_data or self.user_data == other.user_data))

    def __repr__(self):
        return f"ResultObject(first={self.first!r}, second={self.second!r}, user_data={self.user_data!r})"


class BracketOptions:
    """Mode flags for one bracket session."""

    FLAGS = (
        'skip_consolation_round',
        'skip_secondary_final',
        'skip_grand_final_comeback',
        'disable_team_edit',
        'editable',
    )

    def __init__(self, skip_consolation_round: bool = False, skip_secondary_final: bool = False,
                 skip_grand_final_comeback: bool = False, disable_team_edit: bool = False,
                 editable: bool = True):
        self.skip_consolation_round = skip_consolation_round
        self.skip_secondary_final = skip_secondary_final
        self.skip_grand_final_comeback = skip_grand_final_comeback
        self.disable_team_edit = disable_team_edit
        self.editable = editable

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'BracketOptions':
        """Build options from a settings mapping, rejecting unknown or non-boolean flags."""
        data = data or {}
        unknown = sorted(set(data) - set(cls.FLAGS))
        if unknown:
            raise BracketConfigError(f"Unknown bracket option(s): {', '.join(unknown)}")
        for key, value in data.items():
            if not isinstance(value, bool):
                raise BracketConfigError(f"Value of {key} must be boolean, got {type(value).__name__}")
        return cls(**data)

    def to_dict(self) -> Dict[str, bool]:
        return {flag: getattr(self, flag) for flag in self.FLAGS}

    def validate(self, double_elimination: bool, pair_count: int):
        """Reject flag combinations that cannot be built."""
        if self.skip_secondary_final and not double_elimination:
            raise BracketConfigError("skip_secondary_final setting is viable only in double elimination mode")
        if double_elimination and pair_count < 2:
            raise BracketConfigError(
                f"Double elimination needs at least 2 team pairs, got {pair_count}")

    def __eq__(self, other):
        if not isinstance(other, BracketOptions):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        flags = ', '.join(f"{k}={v}" for k, v in self.to_dict().items())
        return f"BracketOptions({flags})"
