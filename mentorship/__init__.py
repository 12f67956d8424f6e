"""Mentorship domain: agent, draft review gate, tools and HTTP routes."""
