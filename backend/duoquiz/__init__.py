"""Two-player, turn-synchronised quiz sessions."""
