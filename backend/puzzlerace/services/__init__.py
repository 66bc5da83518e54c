"""Domain services: rooms, economy, achievements and leaderboard.

This package contains the game logic that HTTP routes and CLI commands
import, keeping transport concerns separated from room lifecycle and
economy rules. Public functions that change state open their own
transaction; private helpers expect to run inside one.
"""
