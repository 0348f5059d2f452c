"""Tactical campaign generators and asset conversion for Discord."""
