"""
Idleverse - Idle Universe Simulation Engine

A deterministic, replayable engine for an incremental universe game.
The engine holds one universe state and provides:
- A pure transition function over a closed set of actions
- Economy formulas for costs, production and prestige
- Cooperative drivers: tick, automation, research, evolution, achievements
- Snapshot persistence and a REST API
"""

__version__ = "0.1.0"
