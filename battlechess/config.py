# battlechess/config.py
from dataclasses import dataclass, field
from typing import Dict, Optional
import logging
import os
import tomllib

# Material values used by the static evaluation
PIECE_VALUES = {
    "QUEEN": 10,
    "ROOK": 5,
    "KNIGHT": 3,
    "BISHOP": 3,
    "PAWN": 1,
    "KING": 0,
}

@dataclass
class SearchConfig:
    depth: int = 3
    time_limit_ms: Optional[int] = 5000  # None means depth-only
    poll_interval_ms: int = 10  # caller-side poll period for find_best_move
    randomize_ties: bool = True  # pick a random move among equally good ones
    seed: Optional[int] = None

    @property
    def time_budget(self) -> Optional[float]:
        """Time limit in seconds, or None when the search is depth-bound only."""
        if self.time_limit_ms is None:
            return None
        return self.time_limit_ms / 1000.0

@dataclass
class EvalConfig:
    piece_values: Dict[str, int] = field(default_factory=lambda: PIECE_VALUES.copy())
    score_terminal_outcomes: bool = True  # mate = +/-1.0, stalemate = 0.0

@dataclass
class Config:
    search: SearchConfig = field(default_factory=SearchConfig)
    eval: EvalConfig = field(default_factory=EvalConfig)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "config.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        if "search" in raw:
            for k, v in raw["search"].items():
                if hasattr(cfg.search, k):
                    setattr(cfg.search, k, v)
        if "eval" in raw:
            for k, v in raw["eval"].items():
                if k == "piece_values":
                    cfg.eval.piece_values.update({name.upper(): val for name, val in v.items()})
                elif hasattr(cfg.eval, k):
                    setattr(cfg.eval, k, v)
        if "log_level" in raw:
            cfg.log_level = str(raw["log_level"]).upper()
        return cfg


def configure_logging(cfg: Optional[Config] = None) -> None:
    """Apply the configured log level to the package logger."""
    cfg = cfg or CONFIG
    logger = logging.getLogger("battlechess")
    logger.setLevel(getattr(logging, cfg.log_level.upper(), logging.INFO))
    if not logging.getLogger().handlers and not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        logger.addHandler(handler)


# single globally importable config instance (defaults only; components take
# their config section as a parameter)
CONFIG = Config.load_from_toml(os.environ.get("BATTLECHESS_CONFIG_TOML", "config.toml"))
# allow env override of depth for quick debugging
override_depth = os.environ.get("BATTLECHESS_SEARCH_DEPTH")
if override_depth:
    try:
        CONFIG.search.depth = int(override_depth)
    except ValueError:
        raise ValueError(f"BATTLECHESS_SEARCH_DEPTH must be an integer, got {override_depth!r}") from None
