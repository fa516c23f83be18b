"""Move generation, check detection and game-end predicates.

Legality is decided one way only: generate pseudo-legal destinations, apply
each one to a copy of the board and drop the copies that leave the mover's
own king attacked.
"""
from __future__ import annotations

from typing import List, Optional, Set

from battlechess.core.board import Board, Move
from battlechess.core.pieces import Color, Piece, PieceKind, Tile

KING_STEPS = ((1, -1), (1, 0), (1, 1), (0, -1), (0, 1), (-1, -1), (-1, 0), (-1, 1))
KNIGHT_STEPS = ((2, -1), (2, 1), (1, 2), (-1, 2), (-2, 1), (-2, -1), (-1, -2), (1, -2))
DIAGONALS = ((1, 1), (-1, 1), (1, -1), (-1, -1))
ORTHOGONALS = ((1, 0), (-1, 0), (0, 1), (0, -1))

SLIDES = {
    PieceKind.BISHOP: DIAGONALS,
    PieceKind.ROOK: ORTHOGONALS,
    PieceKind.QUEEN: DIAGONALS + ORTHOGONALS,
}

# row a pawn starts on, and the direction it walks
PAWN_START_ROW = {Color.WHITE: 1, Color.BLACK: 6}
PAWN_DIRECTION = {Color.WHITE: 1, Color.BLACK: -1}

KING_HOME = {Color.WHITE: Tile(0, 4), Color.BLACK: Tile(7, 4)}
ROOK_HOMES = {
    Color.WHITE: (Tile(0, 0), Tile(0, 7)),
    Color.BLACK: (Tile(7, 0), Tile(7, 7)),
}


class MoveGenerator:
    """Stateless rules oracle. Create one and pass it wherever rules are needed."""

    # ── pseudo-legal moves ─────────────────────────────────────────────────

    def pseudo_moves(self, board: Board, piece: Piece, tile: Tile) -> Set[Tile]:
        """Destinations reachable by ``piece`` on ``tile``, ignoring self-check."""
        if piece == Piece.EMPTY or not self._playable(board):
            return set()
        return self._piece_moves(board, piece, tile)

    def _playable(self, board: Board) -> bool:
        # a board without both kings is not a playable position
        return board.king_tile(Color.WHITE) is not None and board.king_tile(Color.BLACK) is not None

    def _piece_moves(self, board: Board, piece: Piece, tile: Tile) -> Set[Tile]:
        color, kind = piece.color, piece.kind
        if kind == PieceKind.KING:
            return self._steps(board, color, tile, KING_STEPS)
        if kind == PieceKind.KNIGHT:
            return self._steps(board, color, tile, KNIGHT_STEPS)
        if kind == PieceKind.PAWN:
            return self._pawn_moves(board, color, tile)
        return self._slides(board, color, tile, SLIDES[kind])

    def _steps(self, board: Board, color: Color, tile: Tile, steps) -> Set[Tile]:
        result = set()
        for drow, dcol in steps:
            target = tile.offset(drow, dcol)
            if target is not None and board.piece_at(target).color != color:
                result.add(target)
        return result

    def _slides(self, board: Board, color: Color, tile: Tile, directions) -> Set[Tile]:
        result = set()
        for drow, dcol in directions:
            target = tile.offset(drow, dcol)
            while target is not None:
                occupant = board.piece_at(target)
                if occupant == Piece.EMPTY:
                    result.add(target)
                elif occupant.color != color:
                    result.add(target)
                    break
                else:
                    break
                target = target.offset(drow, dcol)
        return result

    def _pawn_moves(self, board: Board, color: Color, tile: Tile) -> Set[Tile]:
        result = set()
        step = PAWN_DIRECTION[color]

        forward = tile.offset(step, 0)
        if forward is not None and board.piece_at(forward) == Piece.EMPTY:
            result.add(forward)
            if tile.row == PAWN_START_ROW[color]:
                double = tile.offset(2 * step, 0)
                if board.piece_at(double) == Piece.EMPTY:
                    result.add(double)

        for dcol in (-1, 1):
            target = tile.offset(step, dcol)
            if target is None:
                continue
            occupant = board.piece_at(target)
            if occupant != Piece.EMPTY and occupant.color != color:
                result.add(target)
        return result

    # ── check ──────────────────────────────────────────────────────────────

    def checking_pieces(self, color: Color, board: Board) -> List[Tile]:
        """Tiles of the opposing pieces currently attacking ``color``'s king."""
        king = board.king_tile(color)
        if king is None or not self._playable(board):
            return []
        return [
            tile for tile in sorted(board.pieces(color.opponent))
            if king in self._piece_moves(board, board.piece_at(tile), tile)
        ]

    def is_in_check(self, color: Color, board: Board) -> bool:
        king = board.king_tile(color)
        if king is None or board.king_tile(color.opponent) is None:
            return False
        for tile in board.pieces(color.opponent):
            if king in self._piece_moves(board, board.piece_at(tile), tile):
                return True
        return False

    # ── legal moves ────────────────────────────────────────────────────────

    def _legal(self, color: Color, board: Board):
        """Yield (origin, destination, child board) for every legal move of ``color``."""
        if not self._playable(board):
            return
        for tile in sorted(board.pieces(color)):
            for destination in sorted(self._piece_moves(board, board.piece_at(tile), tile)):
                child = board.child(tile, destination)
                if not self.is_in_check(color, child):
                    yield tile, destination, child

    def legal_child_boards(self, color: Color, board: Board) -> List[Board]:
        """Every board reachable by one legal move of ``color``."""
        return [child for _, _, child in self._legal(color, board)]

    def legal_moves(self, color: Color, board: Board) -> List[Move]:
        return [Move(origin, destination, board.piece_at(origin)) for origin, destination, _ in self._legal(color, board)]

    def is_legal(self, color: Color, board: Board, move: Move) -> bool:
        piece = board.piece_at(move.origin)
        if piece.color != color or piece != move.piece:
            return False
        if move.destination not in self.pseudo_moves(board, piece, move.origin):
            return False
        return not self.is_in_check(color, board.child(move.origin, move.destination))

    def has_legal_moves(self, color: Color, board: Board) -> bool:
        return next(self._legal(color, board), None) is not None

    # ── game end ───────────────────────────────────────────────────────────

    def is_checkmate(self, color: Color, board: Board) -> bool:
        return self.is_in_check(color, board) and not self.has_legal_moves(color, board)

    def is_stalemate(self, color: Color, board: Board) -> bool:
        return not self.is_in_check(color, board) and not self.has_legal_moves(color, board)

    def castling_rook(self, color: Color, board: Board) -> Optional[Tile]:
        """A rook that could castle with ``color``'s king, if the king is still at home.

        Only detected, never played: no move generated here hops the king two tiles.
        """
        if board.king_tile(color) != KING_HOME[color]:
            return None
        rook = Piece.of(color, PieceKind.ROOK)
        rooks = [tile for tile in sorted(board.pieces(color)) if board.piece_at(tile) == rook][:2]
        for tile in rooks:
            if tile in ROOK_HOMES[color]:
                return tile
        return None
