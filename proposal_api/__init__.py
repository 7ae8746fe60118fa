"""Proposal follow-up tracking API."""
