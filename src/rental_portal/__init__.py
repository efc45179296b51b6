"""Rental portal request gatekeeper."""
