"""Board state: tile -> piece placement plus per-color piece indexes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Set, Tuple

import chess

from battlechess.config import CONFIG
from battlechess.core.pieces import ALL_TILES, Color, Piece, PieceKind, Tile, TileLike, as_tile

BACK_RANK = (
    PieceKind.ROOK, PieceKind.KNIGHT, PieceKind.BISHOP, PieceKind.QUEEN,
    PieceKind.KING, PieceKind.BISHOP, PieceKind.KNIGHT, PieceKind.ROOK,
)


@dataclass(frozen=True)
class Move:
    origin: Tile
    destination: Tile
    piece: Piece

    def uci(self) -> str:
        """Move in UCI notation, e.g. 'e2e4'."""
        return (self.origin.code + self.destination.code).lower()

    def __str__(self) -> str:
        return f"{self.piece.symbol}{self.origin.code}-{self.destination.code}"


class Board:
    def __init__(self):
        """Standard starting position. Use Board.empty() for a blank board."""
        self._squares = [Piece.EMPTY] * 64
        self._indexes: Dict[Color, Set[Tile]] = {Color.WHITE: set(), Color.BLACK: set()}
        for column, kind in enumerate(BACK_RANK):
            self.set_piece(Tile(0, column), Piece.of(Color.WHITE, kind))
            self.set_piece(Tile(1, column), Piece.WHITE_PAWN)
            self.set_piece(Tile(6, column), Piece.BLACK_PAWN)
            self.set_piece(Tile(7, column), Piece.of(Color.BLACK, kind))

    # ── constructors ───────────────────────────────────────────────────────

    @classmethod
    def empty(cls) -> "Board":
        board = cls.__new__(cls)
        board._squares = [Piece.EMPTY] * 64
        board._indexes = {Color.WHITE: set(), Color.BLACK: set()}
        return board

    @classmethod
    def from_pieces(cls, placement: Mapping[TileLike, Piece]) -> "Board":
        """Board holding exactly the given pieces, e.g. {"E1": Piece.WHITE_KING}."""
        board = cls.empty()
        for tile, piece in placement.items():
            board.set_piece(tile, piece)
        return board

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        """Placement from a FEN string (full FEN or the board part only).

        Side to move, castling rights, en passant and clocks are ignored.
        """
        parsed = chess.Board(fen) if " " in fen.strip() else chess.BaseBoard(fen)
        return cls.from_chess(parsed)

    @classmethod
    def from_chess(cls, board: chess.BaseBoard) -> "Board":
        result = cls.empty()
        for square, piece in board.piece_map().items():
            result.set_piece(Tile.from_square(square), Piece.from_symbol(piece.symbol()))
        return result

    def copy(self) -> "Board":
        board = Board.__new__(Board)
        board._squares = self._squares.copy()
        board._indexes = {
            Color.WHITE: set(self._indexes[Color.WHITE]),
            Color.BLACK: set(self._indexes[Color.BLACK]),
        }
        return board

    # ── queries ────────────────────────────────────────────────────────────

    def piece_at(self, tile: TileLike) -> Piece:
        tile = as_tile(tile)
        return self._squares[tile.row * 8 + tile.column]

    def pieces(self, color: Color) -> FrozenSet[Tile]:
        """Tiles currently holding a piece of ``color``."""
        return frozenset(self._indexes[color])

    def occupied(self) -> Dict[Tile, Piece]:
        return {tile: self.piece_at(tile) for color in self._indexes for tile in self._indexes[color]}

    def king_tile(self, color: Color) -> Optional[Tile]:
        king = Piece.of(color, PieceKind.KING)
        for tile in self._indexes[color]:
            if self._squares[tile.row * 8 + tile.column] == king:
                return tile
        return None

    def is_draw(self) -> bool:
        """Only the two kings (or any two lone pieces) are left."""
        return len(self._indexes[Color.WHITE]) == 1 and len(self._indexes[Color.BLACK]) == 1

    def material(self, color: Color, piece_values: Optional[Mapping[str, int]] = None) -> int:
        values = piece_values or CONFIG.eval.piece_values
        return sum(values[self.piece_at(tile).kind.name] for tile in self._indexes[color])

    # ── mutation ───────────────────────────────────────────────────────────

    def set_piece(self, tile: TileLike, piece: Piece) -> None:
        """Place ``piece`` on ``tile`` (Piece.EMPTY clears it), keeping indexes in sync."""
        tile = as_tile(tile)
        index = tile.row * 8 + tile.column
        previous = self._squares[index]
        if previous != Piece.EMPTY:
            self._indexes[previous.color].discard(tile)
        self._squares[index] = piece
        if piece != Piece.EMPTY:
            self._indexes[piece.color].add(tile)

    def apply_move(self, origin: TileLike, destination: TileLike) -> None:
        """Move the piece on ``origin`` to ``destination``, capturing whatever is there.

        No legality check is done here; MoveGenerator only offers legal moves.
        """
        origin, destination = as_tile(origin), as_tile(destination)
        piece = self._squares[origin.row * 8 + origin.column]
        if piece == Piece.EMPTY:
            raise ValueError(f"no piece to move on {origin.code}")
        captured = self._squares[destination.row * 8 + destination.column]
        if captured != Piece.EMPTY:
            self._indexes[captured.color].discard(destination)
        self._squares[destination.row * 8 + destination.column] = piece
        self._squares[origin.row * 8 + origin.column] = Piece.EMPTY
        own = self._indexes[piece.color]
        own.discard(origin)
        own.add(destination)

    def child(self, origin: TileLike, destination: TileLike) -> "Board":
        """A new board with the move applied; this board is left untouched."""
        board = self.copy()
        board.apply_move(origin, destination)
        return board

    # ── interop ────────────────────────────────────────────────────────────

    def to_chess(self, turn: Color = Color.WHITE) -> chess.Board:
        board = chess.Board(None)
        for tile, piece in self.occupied().items():
            board.set_piece_at(tile.square, piece.to_chess())
        board.turn = turn == Color.WHITE
        return board

    def fen(self, turn: Color = Color.WHITE) -> str:
        return self.to_chess(turn).fen()

    def board_fen(self) -> str:
        return self.to_chess().board_fen()

    def _key(self) -> Tuple[Piece, ...]:
        return tuple(self._squares)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._squares == other._squares

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return str(self.to_chess())

    def __repr__(self) -> str:
        return f"Board('{self.board_fen()}')"


def diff_boards(before: Board, after: Board, color: Color) -> Move:
    """The single move of ``color`` that turns ``before`` into ``after``."""
    before_tiles = before.pieces(color)
    after_tiles = after.pieces(color)
    origins = before_tiles - after_tiles
    destinations = after_tiles - before_tiles
    if not origins or not destinations:
        raise ValueError(f"no {color.name} piece moved between the two boards")
    origin = min(origins)
    destination = min(destinations)
    return Move(origin, destination, before.piece_at(origin))


def apply(board: Board, moves: Iterable[Tuple[TileLike, TileLike]]) -> Board:
    """Copy of ``board`` with a sequence of (origin, destination) moves applied."""
    result = board.copy()
    for origin, destination in moves:
        result.apply_move(origin, destination)
    return result
