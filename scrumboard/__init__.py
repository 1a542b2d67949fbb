"""
Scrumboard - Scrum Board Workflow Engine

A deterministic engine for a Scrum board game: cards flow through eight
stages owned by eight roles, under WIP limits, with d6 outcomes during
execution. The engine provides:
- Board state with active slots and FIFO queues
- Role permissions and phase gating
- Outcome resolution with mitigation tokens and technical-debt softening
- Velocity, cumulative-flow and revert metrics
"""

__version__ = "0.1.0"
