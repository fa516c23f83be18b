"""Colors, pieces and board coordinates.

A tile is addressed either by ``(row, column)`` indices, both 0..7 with row 0
being White's back rank, or by its code: the column letter A-H followed by
the row number 1-8. ``(0, 4)`` is ``"E1"``.
"""
from __future__ import annotations

from enum import IntEnum
from typing import NamedTuple, Optional, Tuple, Union

import chess

COLUMNS = "ABCDEFGH"


class Color(IntEnum):
    NONE = 0
    WHITE = 1
    BLACK = 2

    @property
    def opponent(self) -> "Color":
        if self == Color.WHITE:
            return Color.BLACK
        if self == Color.BLACK:
            return Color.WHITE
        raise ValueError("Color.NONE has no opponent")


class PieceKind(IntEnum):
    KING = 1
    QUEEN = 2
    ROOK = 3
    BISHOP = 4
    KNIGHT = 5
    PAWN = 6


_KIND_LETTERS = {
    PieceKind.KING: "k",
    PieceKind.QUEEN: "q",
    PieceKind.ROOK: "r",
    PieceKind.BISHOP: "b",
    PieceKind.KNIGHT: "n",
    PieceKind.PAWN: "p",
}

# python-chess piece types
_CHESS_TYPES = {
    PieceKind.KING: chess.KING,
    PieceKind.QUEEN: chess.QUEEN,
    PieceKind.ROOK: chess.ROOK,
    PieceKind.BISHOP: chess.BISHOP,
    PieceKind.KNIGHT: chess.KNIGHT,
    PieceKind.PAWN: chess.PAWN,
}


class Piece(IntEnum):
    EMPTY = 0
    WHITE_KING = 1
    BLACK_KING = 2
    WHITE_QUEEN = 3
    BLACK_QUEEN = 4
    WHITE_ROOK = 5
    BLACK_ROOK = 6
    WHITE_KNIGHT = 7
    BLACK_KNIGHT = 8
    WHITE_BISHOP = 9
    BLACK_BISHOP = 10
    WHITE_PAWN = 11
    BLACK_PAWN = 12

    @property
    def color(self) -> Color:
        if self == Piece.EMPTY:
            return Color.NONE
        return Color.WHITE if self % 2 == 1 else Color.BLACK

    @property
    def kind(self) -> Optional[PieceKind]:
        if self == Piece.EMPTY:
            return None
        return PieceKind[self.name.split("_", 1)[1]]

    @property
    def symbol(self) -> str:
        """FEN letter: upper case for White, lower case for Black, '.' for empty."""
        if self == Piece.EMPTY:
            return "."
        letter = _KIND_LETTERS[self.kind]
        return letter.upper() if self.color == Color.WHITE else letter

    @staticmethod
    def of(color: Color, kind: PieceKind) -> "Piece":
        if color == Color.NONE:
            raise ValueError("a piece needs a color")
        return Piece[f"{Color(color).name}_{PieceKind(kind).name}"]

    @staticmethod
    def from_symbol(symbol: str) -> "Piece":
        if symbol == ".":
            return Piece.EMPTY
        for kind, letter in _KIND_LETTERS.items():
            if symbol == letter:
                return Piece.of(Color.BLACK, kind)
            if symbol == letter.upper():
                return Piece.of(Color.WHITE, kind)
        raise ValueError(f"invalid piece symbol: {symbol!r}")

    def to_chess(self) -> Optional[chess.Piece]:
        if self == Piece.EMPTY:
            return None
        return chess.Piece(_CHESS_TYPES[self.kind], self.color == Color.WHITE)


def indices_to_code(i: int, j: int) -> str:
    """(row, column) -> tile code, e.g. (1, 4) -> 'E2'."""
    if not (0 <= i < 8 and 0 <= j < 8):
        raise ValueError(f"tile indices out of range: ({i}, {j})")
    return f"{COLUMNS[j]}{i + 1}"


def code_to_indices(code: str) -> Tuple[int, int]:
    """Tile code -> (row, column), e.g. 'E2' -> (1, 4)."""
    if not isinstance(code, str) or len(code) != 2:
        raise ValueError(f"invalid tile code: {code!r}")
    column = COLUMNS.find(code[0].upper())
    if column < 0 or code[1] not in "12345678":
        raise ValueError(f"invalid tile code: {code!r}")
    return int(code[1]) - 1, column


class Tile(NamedTuple):
    row: int
    column: int

    @property
    def code(self) -> str:
        return indices_to_code(self.row, self.column)

    @staticmethod
    def from_code(code: str) -> "Tile":
        return Tile(*code_to_indices(code))

    def offset(self, drow: int, dcol: int) -> Optional["Tile"]:
        """The tile ``drow`` rows and ``dcol`` columns away, or None off the board."""
        row, column = self.row + drow, self.column + dcol
        if 0 <= row < 8 and 0 <= column < 8:
            return Tile(row, column)
        return None

    @property
    def square(self) -> chess.Square:
        return chess.square(self.column, self.row)

    @staticmethod
    def from_square(square: chess.Square) -> "Tile":
        return Tile(chess.square_rank(square), chess.square_file(square))

    def __str__(self) -> str:
        return self.code


TileLike = Union[Tile, Tuple[int, int], str]


def as_tile(value: TileLike) -> Tile:
    """Accept a Tile, a (row, column) pair or a tile code."""
    if isinstance(value, str):
        return Tile.from_code(value)
    row, column = value
    if isinstance(value, Tile) and 0 <= row < 8 and 0 <= column < 8:
        return value
    if not (0 <= row < 8 and 0 <= column < 8):
        raise ValueError(f"tile indices out of range: ({row}, {column})")
    return Tile(row, column)


ALL_TILES = tuple(Tile(i, j) for i in range(8) for j in range(8))
