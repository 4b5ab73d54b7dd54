"""Remortgage offer comparison engine."""
