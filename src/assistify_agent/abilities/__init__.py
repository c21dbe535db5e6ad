"""Ability implementations shipped with the agent."""
