"""Budget-constrained squad selection, lineups and game-day playbooks."""

__version__ = "0.1.0"
