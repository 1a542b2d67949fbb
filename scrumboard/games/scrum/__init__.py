"""
Scrum board - the standard eight-column delivery game.

Key mechanics:
- Cards (effort 1, 3 or 5) flow from Funnel to Production
- Each role owns one column and moves cards one step right
- Execution columns advance or revert cards on a d6 roll
- The Scrum Master softens bad rolls with tokens and technical-debt work
"""

from .cards import STARTER_CARDS, CardTemplate
from .setup import setup_scrum_game

__all__ = [
    "STARTER_CARDS",
    "CardTemplate",
    "setup_scrum_game",
]
