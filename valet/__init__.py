"""Valet — a personal assistant with a layered command router."""
