"""Slash command cogs for the tactical campaign bot."""
