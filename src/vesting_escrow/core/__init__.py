"""Escrow core: schedule math, contracts, errors, logging and metrics."""
