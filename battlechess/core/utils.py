import logging


def format_info(depth, value, nodes, elapsed, tied_moves, state) -> str:
    nps = int(nodes / elapsed) if elapsed > 0 else 0
    value_str = "-" if value is None else f"{value:+.4f}"
    return (f"info depth {depth} value {value_str} nodes {nodes} nps {nps} "
            f"time {int(elapsed * 1000)} ties {tied_moves} state {state}")


def log_info(logger: logging.Logger, stats, state) -> None:
    logger.info(format_info(stats.max_depth, stats.best_value, stats.processed_nodes,
                            stats.elapsed, stats.tied_moves, state.name.lower()))
