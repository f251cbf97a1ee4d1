import copy
import logging
import time
from enum import Enum
from dataclasses import dataclass, field, replace
from typing import override, Any

from alea import RngState, create_rng, next_int

logger = logging.getLogger(__name__)

TABLEAU_CAPACITIES = (3, 4, 5, 6, 7, 8, 9, 10)
FACE_DOWN_COUNT = 3
FOUNDATION_COUNT = 4
RANKS_PER_SUIT = 13
DECK_SIZE = 52

DEFAULT_MAX_ITERATIONS = 200

# Deals verified by hand to be winnable, served in order to new players.
SOLVABLE_SEEDS = (
    1476865939254, 1476269729858, 1476279959891, 1476284075669, 1476288143993,
    1476288349873, 1476288756145, 1476288876115, 1476288966305, 1476289060665,
    1476312883639, 1476313825635, 1476314411891, 1476316120917, 1476321342064,
    1476321569834, 1476321750585, 1476322931647, 1476322987251, 1476324264739,
    1476324353562, 1476324424646, 1476324491202, 1476324724538, 1476324909418,
    1476324977202, 1476354545149, 1476354614628, 1476354677709, 1476354748565,
    1476354866415, 1476355118645, 1476355206087, 1476360560334, 1476360607758,
    1476360705999, 1476360826197, 1476361035381, 1476362732813, 1476362790908,
    1476362898852, 1476704659018, 1476704768474, 1476704834522, 1476705123146,
    1476705211026, 1476705325106, 1476705362634, 1476705466770, 1476705510682,
    1476705708714, 1476865666788, 1476865836591, 1476865849666, 1476866480312,
    1476866723283, 1476867192083, 1476867234667, 1476867300548, 1476880882143,
    1476881704526, 1476881776466, 1476881792584, 1476881941182, 1476881996070,
    1476908135375, 1476908447190, 1476908692430, 1476908712726, 1476908891654,
    1476909287087, 1476909314892, 1476909491583, 1476909801151, 1476910789015,
    1476911105966, 1476911141126, 1476911456063, 1476911494344, 1476912098112,
    1476912186375, 1476912207633, 1476912229910, 1476912274478, 1476912309487,
    1476912549062, 1476912574300, 1476912618814, 1476912764312, 1476913144367,
    1476913229725, 1477124441663, 1477124528823, 1477124652408, 1477124947711,
    1479936899513, 1479936972480, 1479937018459, 1479937086536, 1479937120480,
    1479937133005, 1479937275817, 1479937288171, 1479937327712, 1479937365585,
    1479937474488, 1479937980632, 1479938162465, 1479938284632, 1479938349827,
    1479938392504, 1479938403227, 1479938447480, 1479938731096, 1481292487562,
    1481292547946, 1481292737490, 1481292750264, 1481292770389, 1481292794162,
    1481293006786, 1481293127642, 1481293239035, 1481293254146, 1483015523385,
    1483015574337, 1483015652449, 1483015994921, 1483016019041,
)


def is_solvable_seed(seed: int) -> bool:
    return seed in SOLVABLE_SEEDS


def current_time_seed() -> int:
    return int(time.time() * 1000)


class Color(str, Enum):
    RED = "RED"
    BLACK = "BLACK"


class Suit(int, Enum):
    SPADE = 0
    HEART = 1
    CLUB = 2
    DIAMOND = 3

    @property
    def color(self) -> Color:
        if self == Suit.SPADE or self == Suit.CLUB:
            return Color.BLACK
        return Color.RED

    @override
    def __str__(self) -> str:
        return {
            Suit.SPADE: "♠",
            Suit.HEART: "♥",
            Suit.CLUB: "♣",
            Suit.DIAMOND: "♦",
        }[self]


class Rank(int, Enum):
    ACE = 0
    TWO = 1
    THREE = 2
    FOUR = 3
    FIVE = 4
    SIX = 5
    SEVEN = 6
    EIGHT = 7
    NINE = 8
    TEN = 9
    JACK = 10
    QUEEN = 11
    KING = 12

    @override
    def __str__(self) -> str:
        return {
            Rank.ACE: "A",
            Rank.JACK: "J",
            Rank.QUEEN: "Q",
            Rank.KING: "K",
        }.get(self, str(self.value + 1))


@dataclass
class Card:
    suit: Suit
    rank: Rank
    face_up: bool = False

    def __post_init__(self) -> None:
        self.suit = Suit(self.suit)
        self.rank = Rank(self.rank)

    @property
    def id(self) -> int:
        return int(self.suit) * RANKS_PER_SUIT + int(self.rank)

    @staticmethod
    def from_id(card_id: int, *, face_up: bool = False) -> "Card":
        if not 0 <= card_id < DECK_SIZE:
            msg = f"Invalid card id {card_id}"
            raise ValueError(msg)
        return Card(Suit(card_id // RANKS_PER_SUIT), Rank(card_id % RANKS_PER_SUIT), face_up)

    @override
    def __str__(self) -> str:
        if not self.face_up:
            return f"[{self.rank}{self.suit}]"
        return f"{self.rank}{self.suit}"

    @override
    def __repr__(self) -> str:
        return self.__str__()


type HidableCard = Card | None


class Pile:
    def __init__(self, cards: list[Card] | None = None):
        self.cards = list(cards) if cards else []

    @override
    def __str__(self) -> str:
        return " ".join(str(card) for card in self.cards) or "-"

    @override
    def __repr__(self) -> str:
        return f"Pile({self.cards})"

    @override
    def __eq__(self, other: Any) -> bool:  # pyright: ignore [reportAny]
        if not isinstance(other, Pile):
            return False
        return self.cards == other.cards

    def __len__(self) -> int:
        return len(self.cards)

    def __getitem__(self, index: int) -> Card:
        return self.cards[index]

    def __iter__(self):
        return iter(self.cards)

    def add_to_top(self, card: Card) -> None:
        self.cards.append(card)

    def add_multiple_to_top(self, cards: list[Card]) -> None:
        self.cards.extend(cards)

    def insert_at(self, index: int, cards: list[Card]) -> None:
        self.cards[index:index] = cards

    def inspect_top(self) -> HidableCard:
        if len(self.cards) == 0:
            return None
        return self.cards[-1]

    def inspect_all(self) -> list[Card]:
        return self.cards.copy()

    def get_from_top(self) -> HidableCard:
        if len(self.cards) == 0:
            return None
        return self.cards.pop()

    def take_from(self, index: int) -> list[Card]:
        taken = self.cards[index:]
        del self.cards[index:]
        return taken


class MoveType(str, Enum):
    TABLEAU_TO_TABLEAU = "tableau-to-tableau"
    TABLEAU_TO_FOUNDATION = "tableau-to-foundation"
    FOUNDATION_TO_TABLEAU = "foundation-to-tableau"
    FLIP = "flip"


@dataclass(frozen=True)
class TableauToTableau:
    from_pile: int
    to_pile: int
    card_index: int
    # Filled in when the move is recorded; lets undo return exactly these cards.
    moved_count: int | None = field(default=None, compare=False)

    @property
    def type(self) -> MoveType:
        return MoveType.TABLEAU_TO_TABLEAU

    @override
    def __str__(self) -> str:
        return f"T{self.from_pile} ({self.card_index}) -> T{self.to_pile}"


@dataclass(frozen=True)
class TableauToFoundation:
    from_pile: int
    to_foundation: int

    @property
    def type(self) -> MoveType:
        return MoveType.TABLEAU_TO_FOUNDATION

    @override
    def __str__(self) -> str:
        return f"T{self.from_pile} -> F{self.to_foundation}"


@dataclass(frozen=True)
class FoundationToTableau:
    from_foundation: int
    to_pile: int

    @property
    def type(self) -> MoveType:
        return MoveType.FOUNDATION_TO_TABLEAU

    @override
    def __str__(self) -> str:
        return f"F{self.from_foundation} -> T{self.to_pile}"


@dataclass(frozen=True)
class Flip:
    pile: int

    @property
    def type(self) -> MoveType:
        return MoveType.FLIP

    @override
    def __str__(self) -> str:
        return f"flip T{self.pile}"


type Move = TableauToTableau | TableauToFoundation | FoundationToTableau | Flip


@dataclass
class GameState:
    tableau: list[Pile]
    foundations: list[Pile]
    seed: int
    rng_state: RngState
    move_history: list[Move] = field(default_factory=list)
    last_move: Move | None = None

    def copy(self) -> "GameState":
        return copy.deepcopy(self)

    def card_count(self) -> int:
        return sum(len(pile) for pile in self.tableau) + self.foundation_count()

    def foundation_count(self) -> int:
        return sum(len(pile) for pile in self.foundations)

    @override
    def __str__(self) -> str:
        lines = [f"Seed {self.seed}"]
        lines.extend(f"  F{idx}: {pile.inspect_top() or '-'}" for idx, pile in enumerate(self.foundations))
        lines.extend(f"  T{idx}: {pile}" for idx, pile in enumerate(self.tableau))
        return "\n".join(lines)


def _create_deck() -> list[Card]:
    return [Card(suit, rank) for suit in Suit for rank in Rank]


def _empty_tableau() -> list[Pile]:
    return [Pile() for _ in TABLEAU_CAPACITIES]


def _empty_foundations() -> list[Pile]:
    return [Pile() for _ in range(FOUNDATION_COUNT)]


def new_game(seed: int) -> GameState:
    """
    Deal a game for ``seed``.

    Each iteration draws a target pile and, only if that pile still has room,
    a card from the undealt ones. Draws that land on a full pile are thrown
    away. Replacing this with a plain shuffle would change every deal for
    every seed already handed out.

    The first ``FACE_DOWN_COUNT`` cards of each pile are dealt face-down.
    The returned ``rng_state`` is the generator as left by the deal.
    """
    rng_state = create_rng(seed)

    tableau = _empty_tableau()
    undealt = _create_deck()

    while len(undealt) > 0:
        pile_idx = next_int(rng_state, len(tableau))
        pile = tableau[pile_idx]
        if len(pile) >= TABLEAU_CAPACITIES[pile_idx]:
            continue
        card = undealt.pop(next_int(rng_state, len(undealt)))
        card.face_up = len(pile) >= FACE_DOWN_COUNT
        pile.add_to_top(card)

    return GameState(
        tableau=tableau,
        foundations=_empty_foundations(),
        seed=seed,
        rng_state=rng_state,
    )


def create_empty_game(seed: int | None = None) -> GameState:
    if seed is None:
        seed = current_time_seed()
    return GameState(
        tableau=_empty_tableau(),
        foundations=_empty_foundations(),
        seed=seed,
        rng_state=create_rng(seed),
    )


def is_black(suit: Suit) -> bool:
    return Suit(suit).color == Color.BLACK


def is_red(suit: Suit) -> bool:
    return Suit(suit).color == Color.RED


def are_opposite_colors(suit1: Suit, suit2: Suit) -> bool:
    return is_black(suit1) != is_black(suit2)


def get_movable_stack(state: GameState, pile_index: int, card_index: int) -> list[Card] | None:
    """
    Return the cards from ``card_index`` to the top of the tableau pile.

    ``None`` if an index is out of range or any of those cards is face-down.
    The run is not checked for alternating colors; that is only required of
    the card the stack is dropped on.
    """
    if not 0 <= pile_index < len(state.tableau):
        return None
    pile = state.tableau[pile_index]
    if not 0 <= card_index < len(pile):
        return None

    stack = pile.cards[card_index:]
    if any(not card.face_up for card in stack):
        return None
    return stack


def can_drop_on_tableau(moving_stack: list[Card], target_pile: Pile) -> bool:
    if len(moving_stack) == 0:
        return False
    bottom_card = moving_stack[0]
    top_card = target_pile.inspect_top()
    if top_card is None:
        return bottom_card.rank == Rank.KING
    return are_opposite_colors(bottom_card.suit, top_card.suit) and top_card.rank == bottom_card.rank + 1


def can_drop_on_foundation(card: Card, foundation_pile: Pile) -> bool:
    top_card = foundation_pile.inspect_top()
    if top_card is None:
        return card.rank == Rank.ACE
    return card.suit == top_card.suit and card.rank == top_card.rank + 1


def _is_tableau_index(state: GameState, idx: int) -> bool:
    return 0 <= idx < len(state.tableau)


def _is_foundation_index(state: GameState, idx: int) -> bool:
    return 0 <= idx < len(state.foundations)


def _reveal_top(pile: Pile) -> None:
    top_card = pile.inspect_top()
    if top_card is not None and not top_card.face_up:
        top_card.face_up = True


def _record(state: GameState, move: Move) -> None:
    state.last_move = move
    state.move_history.append(move)


def _move_tableau_to_tableau(state: GameState, move: TableauToTableau) -> bool:
    if move.from_pile == move.to_pile or not _is_tableau_index(state, move.to_pile):
        return False
    stack = get_movable_stack(state, move.from_pile, move.card_index)
    if stack is None or not can_drop_on_tableau(stack, state.tableau[move.to_pile]):
        return False

    source = state.tableau[move.from_pile]
    state.tableau[move.to_pile].add_multiple_to_top(source.take_from(move.card_index))
    _reveal_top(source)
    _record(state, replace(move, moved_count=len(stack)))
    return True


def _move_tableau_to_foundation(state: GameState, move: TableauToFoundation) -> bool:
    if not _is_tableau_index(state, move.from_pile) or not _is_foundation_index(state, move.to_foundation):
        return False
    source = state.tableau[move.from_pile]
    foundation = state.foundations[move.to_foundation]
    card = source.inspect_top()
    if card is None or not card.face_up or not can_drop_on_foundation(card, foundation):
        return False

    _ = source.get_from_top()
    foundation.add_to_top(card)
    _reveal_top(source)
    _record(state, move)
    return True


def _move_foundation_to_tableau(state: GameState, move: FoundationToTableau) -> bool:
    if not _is_foundation_index(state, move.from_foundation) or not _is_tableau_index(state, move.to_pile):
        return False
    foundation = state.foundations[move.from_foundation]
    target = state.tableau[move.to_pile]
    card = foundation.inspect_top()
    if card is None or not can_drop_on_tableau([card], target):
        return False

    _ = foundation.get_from_top()
    target.add_to_top(card)
    _record(state, move)
    return True


def _flip(state: GameState, move: Flip) -> bool:
    if not _is_tableau_index(state, move.pile):
        return False
    card = state.tableau[move.pile].inspect_top()
    if card is None or card.face_up:
        return False

    card.face_up = True
    _record(state, move)
    return True


def apply_move(state: GameState, move: Move) -> bool:
    """
    Validate and apply ``move`` in place.

    Returns False and leaves ``state`` untouched when the move is illegal.
    """
    if isinstance(move, TableauToTableau):
        applied = _move_tableau_to_tableau(state, move)
    elif isinstance(move, TableauToFoundation):
        applied = _move_tableau_to_foundation(state, move)
    elif isinstance(move, FoundationToTableau):
        applied = _move_foundation_to_tableau(state, move)
    elif isinstance(move, Flip):
        applied = _flip(state, move)
    else:
        msg = f"Unknown move {move!r}"
        raise ValueError(msg)

    if not applied:
        logger.debug("Rejected move %s", move)
    return applied


def _undo_tableau_to_tableau(state: GameState, move: TableauToTableau) -> bool:
    if move.moved_count is None:
        return False
    if not _is_tableau_index(state, move.from_pile) or not _is_tableau_index(state, move.to_pile):
        return False
    source = state.tableau[move.from_pile]
    target = state.tableau[move.to_pile]
    if len(target) < move.moved_count or not 0 <= move.card_index <= len(source):
        return False

    source.insert_at(move.card_index, target.take_from(len(target) - move.moved_count))
    return True


def _undo_tableau_to_foundation(state: GameState, move: TableauToFoundation) -> bool:
    if not _is_tableau_index(state, move.from_pile) or not _is_foundation_index(state, move.to_foundation):
        return False
    # The card revealed by the forward move stays face-up.
    card = state.foundations[move.to_foundation].get_from_top()
    if card is None:
        return False
    state.tableau[move.from_pile].add_to_top(card)
    return True


def _undo_foundation_to_tableau(state: GameState, move: FoundationToTableau) -> bool:
    if not _is_foundation_index(state, move.from_foundation) or not _is_tableau_index(state, move.to_pile):
        return False
    card = state.tableau[move.to_pile].get_from_top()
    if card is None:
        return False
    state.foundations[move.from_foundation].add_to_top(card)
    return True


def _undo_flip(state: GameState, move: Flip) -> bool:
    if not _is_tableau_index(state, move.pile):
        return False
    card = state.tableau[move.pile].inspect_top()
    if card is None or not card.face_up:
        return False
    card.face_up = False
    return True


def undo(state: GameState) -> bool:
    """Reverse ``state.last_move``. Only the single most recent move can be undone."""
    move = state.last_move
    if move is None:
        return False

    if isinstance(move, TableauToTableau):
        undone = _undo_tableau_to_tableau(state, move)
    elif isinstance(move, TableauToFoundation):
        undone = _undo_tableau_to_foundation(state, move)
    elif isinstance(move, FoundationToTableau):
        undone = _undo_foundation_to_tableau(state, move)
    elif isinstance(move, Flip):
        undone = _undo_flip(state, move)
    else:
        undone = False

    if not undone:
        logger.debug("Could not undo %s", move)
        return False

    state.last_move = None
    if len(state.move_history) > 0:
        _ = state.move_history.pop()
    return True


def is_win(state: GameState) -> bool:
    return state.foundation_count() == DECK_SIZE


def get_auto_moves_to_foundation(state: GameState) -> list[TableauToFoundation]:
    moves: list[TableauToFoundation] = []
    for pile_idx, pile in enumerate(state.tableau):
        card = pile.inspect_top()
        if card is None or not card.face_up:
            continue
        foundation_idx = int(card.suit)
        if can_drop_on_foundation(card, state.foundations[foundation_idx]):
            moves.append(TableauToFoundation(pile_idx, foundation_idx))
    return moves


def run_finish(state: GameState, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> int:
    """Play foundation moves, lowest pile first, until none is left. Returns the number applied."""
    moves_applied = 0
    for _ in range(max_iterations):
        auto_moves = get_auto_moves_to_foundation(state)
        if len(auto_moves) == 0:
            break
        if not apply_move(state, auto_moves[0]):
            logger.warning("Auto move %s was rejected", auto_moves[0])
            break
        moves_applied += 1

    logger.debug("Finish applied %d moves", moves_applied)
    return moves_applied


def get_solve_move(state: GameState) -> Move | None:
    """
    Pick the next move for the greedy solver.

    Foundation moves come first. After that, the first tableau move that
    uncovers a face-down card wins; failing that, the first legal tableau
    move found. This looks one move ahead only, so ``None`` on a position
    that is still winnable is expected.
    """
    auto_moves = get_auto_moves_to_foundation(state)
    if len(auto_moves) > 0:
        return auto_moves[0]

    fallback_move: TableauToTableau | None = None
    for from_pile, pile in enumerate(state.tableau):
        for card_idx, card in enumerate(pile):
            if not card.face_up:
                continue
            stack = get_movable_stack(state, from_pile, card_idx)
            if stack is None:
                continue
            for to_pile, target in enumerate(state.tableau):
                if to_pile == from_pile or not can_drop_on_tableau(stack, target):
                    continue
                move = TableauToTableau(from_pile, to_pile, card_idx)
                if card_idx > 0 and not pile[card_idx - 1].face_up:
                    return move
                if fallback_move is None:
                    fallback_move = move

    return fallback_move


def run_solve_step(state: GameState) -> bool:
    move = get_solve_move(state)
    if move is None:
        return False
    return apply_move(state, move)


def run_solve(state: GameState, max_steps: int = DEFAULT_MAX_ITERATIONS) -> int:
    steps = 0
    for _ in range(max_steps):
        if not run_solve_step(state):
            break
        steps += 1

    logger.debug("Solve applied %d moves", steps)
    return steps


class GameSession:
    """
    Holds the deal a player started from and the game they are playing.

    Every action works on a copy of the active game, so a reference to an
    earlier ``active_game`` keeps showing that earlier position.
    """

    def __init__(self, seed: int | None = None, seed_index: int = 0):
        self.seed_index = seed_index
        self.initial_game = new_game(seed if seed is not None else self.next_seed())
        self.active_game = self.initial_game.copy()

    @property
    def seed(self) -> int:
        return self.initial_game.seed

    @property
    def is_won(self) -> bool:
        return is_win(self.active_game)

    def next_seed(self) -> int:
        if self.seed_index < len(SOLVABLE_SEEDS):
            seed = SOLVABLE_SEEDS[self.seed_index]
            self.seed_index += 1
            return seed
        return current_time_seed()

    def start_new_game(self, seed: int | None = None) -> None:
        if seed is None:
            seed = self.next_seed()
        logger.info("Starting game with seed %d", seed)
        self.initial_game = new_game(seed)
        self.active_game = self.initial_game.copy()

    def retry(self) -> None:
        self.start_new_game(self.seed)

    def reset_to_initial_game(self) -> None:
        self.active_game = self.initial_game.copy()

    def perform_move(self, move: Move) -> bool:
        game = self.active_game.copy()
        if not apply_move(game, move):
            return False
        self.active_game = game
        return True

    def perform_undo(self) -> bool:
        game = self.active_game.copy()
        if not undo(game):
            return False
        self.active_game = game
        return True

    def perform_finish(self) -> int:
        game = self.active_game.copy()
        moves_applied = run_finish(game)
        self.active_game = game
        return moves_applied

    def perform_solve(self, max_steps: int = DEFAULT_MAX_ITERATIONS) -> int:
        game = self.active_game.copy()
        steps = run_solve(game, max_steps)
        self.active_game = game
        return steps
