"""Clients for the remote services tasks act upon."""
