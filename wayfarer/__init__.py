"""Navigation and movement control loop for game-automation actors."""

__version__ = "0.1.0"
