"""BattleChess: a small minimax chess engine with a time-boxed background search."""

__version__ = "0.1.0"
