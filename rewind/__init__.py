"""Rewind : historique des changements et annulation / Change tracking and undo engine."""
